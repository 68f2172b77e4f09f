#!/usr/bin/env python3
# jira_task_viewer: Terminal dashboard for the Jira issues assigned to you
#
# Hotkeys (normal mode)
#   j/k, arrows  move selection (prefix a count: 5j moves five rows)
#   d/u          jump 20 rows down/up
#   g / G        top / bottom
#   Ctrl-E/Y     scroll the list without moving the selection (count aware)
#   s            toggle the details sidebar
#   i            type a new issue (Enter adds it, Esc leaves input mode)
#   q            quit
#
# Hotkeys (input mode)
#   Ctrl-W       delete previous word
#   Ctrl-U       clear the line
#
# Notes
# - Issues added from the input line live only for this session; nothing is
#   written back to Jira.
# - The issue table hides low-priority columns when the terminal is narrow.
#
# Environment
# - JIRA_TUI_URL   (e.g. https://your-domain.atlassian.net)
# - JIRA_TUI_USER  (account e-mail)
# - JIRA_TUI_TOKEN (API token)
#   All three may also come from a .env file.
# - MOCK_FETCH=1 (optional offline demo)

from __future__ import annotations

import argparse
import logging
import os
import string
import sys
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import requests
import yaml
from prompt_toolkit import Application
from prompt_toolkit.application.current import get_app
from prompt_toolkit.data_structures import Point
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.key_binding.key_processor import KeyPress
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, VSplit, Layout, Window
from prompt_toolkit.layout.containers import ConditionalContainer
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.utils import get_cwidth


LOGGER_NAME = 'jira_task_viewer'
ENV_KEYS = ("JIRA_TUI_URL", "JIRA_TUI_USER", "JIRA_TUI_TOKEN")
DEFAULT_JQL = "assignee = currentUser() AND resolution = Unresolved ORDER BY updated DESC"
DEFAULT_MAX_RESULTS = 100
DEFAULT_REFRESH_INTERVAL = 0.2  # seconds between redraws when no key arrives
SEARCH_PATH = "/rest/api/3/search/jql"
STORY_POINTS_FIELD = "customfield_10016"
NO_ID = "<no id>"
NO_SUMMARY = "<no summary>"
INPUT_PLACEHOLDER = "New issue (i)"


class ConfigError(ValueError):
    """A required startup setting is missing or malformed."""


class FetchError(RuntimeError):
    """The startup issue search could not be completed."""


# -----------------------------
# Config models
# -----------------------------
@dataclass
class JiraConfig:
    base_url: str
    username: str
    api_token: str
    jql: str = DEFAULT_JQL
    max_results: int = DEFAULT_MAX_RESULTS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "JiraConfig":
        """Load credentials from JIRA_TUI_URL, JIRA_TUI_USER and JIRA_TUI_TOKEN."""
        env = os.environ if environ is None else environ
        values = []
        for key in ENV_KEYS:
            value = (env.get(key) or "").strip()
            if not value:
                raise ConfigError(f"{key} not set")
            values.append(value)
        base_url, username, api_token = values
        return cls(base_url=base_url.rstrip("/"), username=username, api_token=api_token)


def load_dotenv_values(search_dirs: Optional[Sequence[str]] = None) -> Dict[str, str]:
    """Copy JIRA_TUI_* values from the first .env file found into os.environ.

    Values already present in the environment win. Returns what the file held.
    """
    candidates = list(search_dirs) if search_dirs is not None else [os.getcwd(), os.path.dirname(os.path.abspath(__file__))]
    for base in candidates:
        path = os.path.join(base, ".env")
        if not os.path.isfile(path):
            continue
        found: Dict[str, str] = {}
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                k, v = line.split('=', 1)
                k = k.strip()
                if k.startswith("export "):
                    k = k[len("export "):].strip()
                v = v.strip().strip('"').strip("'")
                if k in ENV_KEYS and v:
                    found[k] = v
                    os.environ.setdefault(k, v)
        return found
    return {}


def load_config_file(path: str) -> Dict[str, object]:
    """Read optional settings (jql, max_results, refresh_interval) from YAML."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config: {path} must contain a mapping.")
    out: Dict[str, object] = {}
    jql = raw.get("jql")
    if jql is not None:
        if not isinstance(jql, str) or not jql.strip():
            raise ConfigError("Config: 'jql' must be a non-empty string.")
        out["jql"] = jql.strip()
    if raw.get("max_results") is not None:
        try:
            max_results = int(raw["max_results"])
        except (TypeError, ValueError):
            raise ConfigError("Config: 'max_results' must be an integer.") from None
        if max_results <= 0:
            raise ConfigError("Config: 'max_results' must be positive.")
        out["max_results"] = max_results
    if raw.get("refresh_interval") is not None:
        try:
            interval = float(raw["refresh_interval"])
        except (TypeError, ValueError):
            raise ConfigError("Config: 'refresh_interval' must be a number of seconds.") from None
        if interval <= 0:
            raise ConfigError("Config: 'refresh_interval' must be positive.")
        out["refresh_interval"] = interval
    return out


# -----------------------------
# Issue model
# -----------------------------
@dataclass
class Issue:
    summary: str
    description: str = ""
    id: str = ""
    issue_type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    story_points: Optional[float] = None
    parent_epic: Optional[str] = None


def adf_to_plain_text(node: object) -> str:
    """Flatten an Atlassian Document Format node into plain text (best effort)."""
    if isinstance(node, dict):
        if "content" in node:
            return adf_to_plain_text(node["content"])
        text = node.get("text")
        return text if isinstance(text, str) else ""
    if isinstance(node, list):
        return "".join(adf_to_plain_text(child) for child in node)
    return ""


def _named(fields: Mapping[str, object], key: str) -> Optional[str]:
    value = fields.get(key)
    if isinstance(value, dict):
        name = value.get("name")
        if isinstance(name, str):
            return name
    return None


def issue_from_jira(payload: Mapping[str, object]) -> Issue:
    """Map one issue object of a Jira search response to an Issue."""
    key = payload.get("key")
    issue_id = key if isinstance(key, str) and key else NO_ID
    fields = payload.get("fields")
    if not isinstance(fields, dict):
        return Issue(summary=NO_SUMMARY, id=issue_id)

    summary = fields.get("summary")
    if not isinstance(summary, str):
        summary = NO_SUMMARY
    raw_description = fields.get("description")
    if isinstance(raw_description, str):
        description = raw_description
    elif raw_description is None:
        description = ""
    else:
        description = adf_to_plain_text(raw_description)
    points = fields.get(STORY_POINTS_FIELD)
    story_points = float(points) if isinstance(points, (int, float)) and not isinstance(points, bool) else None
    parent_epic = None
    parent = fields.get("parent")
    if isinstance(parent, dict) and isinstance(parent.get("fields"), dict):
        epic = parent["fields"].get("summary")
        if isinstance(epic, str):
            parent_epic = epic

    return Issue(
        summary=summary,
        description=description,
        id=issue_id,
        issue_type=_named(fields, "issuetype"),
        status=_named(fields, "status"),
        priority=_named(fields, "priority"),
        story_points=story_points,
        parent_epic=parent_epic,
    )


# -----------------------------
# Jira REST
# -----------------------------
def _session(config: JiraConfig) -> requests.Session:
    s = requests.Session()
    s.auth = (config.username, config.api_token)
    s.headers["Accept"] = "application/json"
    return s


def fetch_assigned_issues(config: JiraConfig, session: Optional[requests.Session] = None) -> List[Dict[str, object]]:
    """Run the configured JQL search once and return the raw issue objects.

    Any transport, HTTP or decoding failure is raised as FetchError; there is
    no retry.
    """
    logger = logging.getLogger(LOGGER_NAME)
    s = session or _session(config)
    url = config.base_url.rstrip("/") + SEARCH_PATH
    params = {
        "jql": config.jql,
        "maxResults": config.max_results,
        "fields": "*navigable",
    }
    logger.info("Searching %s (max %d)", url, config.max_results)
    try:
        r = s.get(url, params=params, timeout=60)
        r.raise_for_status()
        data = r.json()
    except (requests.exceptions.RequestException, ValueError) as exc:
        logger.exception("Jira search failed")
        raise FetchError(f"Failed to fetch issues from {url}: {exc}") from exc
    if not isinstance(data, dict):
        raise FetchError(f"Unexpected response from {url}: expected a JSON object")
    issues = [item for item in (data.get("issues") or []) if isinstance(item, dict)]
    logger.info("Fetched %d issues", len(issues))
    return issues


# -----------------------------
# Key events
# -----------------------------
@dataclass(frozen=True)
class KeyEvent:
    key: str            # printable character or a key name ("enter", "up", ...)
    ctrl: bool = False


_NAMED_KEYS: Dict[str, str] = {
    Keys.ControlM.value: "enter",
    Keys.ControlJ.value: "enter",
    Keys.ControlH.value: "backspace",
    Keys.ControlI.value: "tab",
    Keys.Escape.value: "escape",
    Keys.Up.value: "up",
    Keys.Down.value: "down",
    Keys.Left.value: "left",
    Keys.Right.value: "right",
}


def key_event_from_press(press: KeyPress) -> KeyEvent:
    """Normalise a prompt_toolkit key press into a KeyEvent."""
    raw = press.key.value if isinstance(press.key, Keys) else str(press.key)
    if raw in _NAMED_KEYS:
        return KeyEvent(_NAMED_KEYS[raw])
    if raw.startswith("c-") and len(raw) == 3:
        return KeyEvent(raw[2], ctrl=True)
    return KeyEvent(raw)


def paste_key_events(data: str) -> List[KeyEvent]:
    """Split pasted text into one KeyEvent per printable character.

    Line breaks and tabs become spaces so a multi-line paste never submits.
    """
    text = data.replace("\r\n", " ").replace("\r", " ").replace("\n", " ").replace("\t", " ")
    return [KeyEvent(ch) for ch in text if ch.isprintable()]


# -----------------------------
# Modes & actions
# -----------------------------
class Mode(Enum):
    NORMAL = "normal"
    INSERT = "insert"


class ActionKind(Enum):
    QUIT = "quit"
    JUMP = "jump"
    SCROLL = "scroll"
    ENTER_INPUT = "enter_input"
    GOTO_TOP = "goto_top"
    GOTO_BOTTOM = "goto_bottom"
    TOGGLE_SIDEBAR = "toggle_sidebar"
    SUBMIT = "submit"
    CANCEL = "cancel"
    EDITED = "edited"
    NONE = "none"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    delta: int = 0      # rows, for JUMP and SCROLL


NO_ACTION = Action(ActionKind.NONE)
PAGE_JUMP = 20


@dataclass
class PendingCount:
    """Repeat count typed ahead of a normal-mode command (the 5 in 5j)."""
    value: Optional[int] = None

    def push_digit(self, digit: int) -> None:
        self.value = (self.value or 0) * 10 + digit

    def take(self) -> Optional[int]:
        value, self.value = self.value, None
        return value


def dispatch_normal(key: KeyEvent, pending: PendingCount) -> Action:
    """Resolve a normal-mode key into an Action.

    Digits accumulate into ``pending`` and yield NONE; a bare '0' does not
    start a count. Every other key consumes the pending count, used or not.
    """
    if len(key.key) == 1 and key.key in string.digits:
        if key.key != "0" or pending.value is not None:
            pending.push_digit(int(key.key))
            return NO_ACTION

    count = pending.take()
    if count is None:
        count = 1

    if key.ctrl:
        if key.key == "e":
            return Action(ActionKind.SCROLL, count)
        if key.key == "y":
            return Action(ActionKind.SCROLL, -count)
        return NO_ACTION

    name = key.key
    if name in ("j", "down"):
        return Action(ActionKind.JUMP, count)
    if name in ("k", "up"):
        return Action(ActionKind.JUMP, -count)
    if name == "d":
        return Action(ActionKind.JUMP, PAGE_JUMP)
    if name == "u":
        return Action(ActionKind.JUMP, -PAGE_JUMP)
    if name == "i":
        return Action(ActionKind.ENTER_INPUT)
    if name == "g":
        return Action(ActionKind.GOTO_TOP)
    if name == "G":
        return Action(ActionKind.GOTO_BOTTOM)
    if name == "s":
        return Action(ActionKind.TOGGLE_SIDEBAR)
    if name == "q":
        return Action(ActionKind.QUIT)
    return NO_ACTION


# -----------------------------
# Text editor
# -----------------------------
def delete_prev_word(text: str) -> str:
    """Drop the last word (and any whitespace after it), keeping the separator before it."""
    trimmed = text.rstrip()
    for pos in range(len(trimmed) - 1, -1, -1):
        if trimmed[pos].isspace():
            return text[:pos + 1]
    return ""


@dataclass
class TextBuffer:
    text: str = ""
    cursor: int = 0     # character offset; always len(text) after an edit

    def _to_end(self) -> None:
        self.cursor = len(self.text)

    def append(self, ch: str) -> None:
        self.text += ch
        self._to_end()

    def backspace(self) -> None:
        self.text = self.text[:-1]
        self._to_end()

    def delete_word(self) -> None:
        self.text = delete_prev_word(self.text)
        self._to_end()

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0


def dispatch_insert(key: KeyEvent, buffer: TextBuffer) -> Action:
    """Apply an input-mode key to ``buffer``; returns SUBMIT, CANCEL, EDITED or NONE."""
    if key.key == "enter":
        return Action(ActionKind.SUBMIT)
    if key.key == "escape":
        return Action(ActionKind.CANCEL)
    if key.ctrl:
        if key.key == "w":
            buffer.delete_word()
            return Action(ActionKind.EDITED)
        if key.key == "u":
            buffer.clear()
            return Action(ActionKind.EDITED)
        return NO_ACTION
    if key.key == "backspace":
        buffer.backspace()
        return Action(ActionKind.EDITED)
    if len(key.key) == 1 and key.key.isprintable():
        buffer.append(key.key)
        return Action(ActionKind.EDITED)
    return NO_ACTION


# -----------------------------
# Selection & scrolling
# -----------------------------
@dataclass(frozen=True)
class SelectionState:
    index: Optional[int] = None
    offset: int = 0     # first visible row

    @classmethod
    def initial(cls, length: int) -> "SelectionState":
        return cls(index=0 if length > 0 else None, offset=0)


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def move_selection(state: SelectionState, length: int, action: Action) -> SelectionState:
    """Apply a movement action; the result is always within ``length``."""
    kind = action.kind
    if kind is ActionKind.JUMP:
        if length <= 0:
            return replace(state, index=None)
        current = state.index if state.index is not None else 0
        return replace(state, index=_clamp(current + action.delta, 0, length - 1))
    if kind is ActionKind.SCROLL:
        if length <= 0:
            return state
        return replace(state, offset=_clamp(state.offset + action.delta, 0, length - 1))
    if kind is ActionKind.GOTO_TOP:
        return replace(state, index=0) if length > 0 else state
    if kind is ActionKind.GOTO_BOTTOM:
        return replace(state, index=length - 1) if length > 0 else state
    return state


def follow_selection(state: SelectionState, height: int) -> SelectionState:
    """Shift the offset the least amount that keeps the selected row on screen."""
    if state.index is None:
        return state
    height = max(1, height)
    if state.index < state.offset:
        return replace(state, offset=state.index)
    if state.index >= state.offset + height:
        return replace(state, offset=state.index - height + 1)
    return state


# -----------------------------
# Column layout
# -----------------------------
class Field(Enum):
    ID = "id"
    SUMMARY = "summary"
    STATUS = "status"
    PRIORITY = "priority"


@dataclass(frozen=True)
class Fixed:
    width: int

    @property
    def min_width(self) -> int:
        return self.width


@dataclass(frozen=True)
class Flexible:
    factor: int
    min_width: int


FieldWidth = Union[Fixed, Flexible]

FIELD_WIDTHS: Dict[Field, FieldWidth] = {
    Field.ID: Fixed(8),
    Field.SUMMARY: Flexible(factor=5, min_width=20),
    Field.STATUS: Flexible(factor=1, min_width=5),
    Field.PRIORITY: Fixed(1),
}
# Left-to-right order of the visible columns.
RENDER_ORDER: Tuple[Field, ...] = (Field.ID, Field.PRIORITY, Field.SUMMARY, Field.STATUS)
# Order in which columns claim space; the first one is always shown.
PRIORITY_ORDER: Tuple[Field, ...] = (Field.SUMMARY, Field.STATUS, Field.ID, Field.PRIORITY)
COLUMN_SPACING = 2


def layout_columns(
    available_width: int,
    catalog: Optional[Mapping[Field, FieldWidth]] = None,
    priority_order: Sequence[Field] = PRIORITY_ORDER,
    render_order: Sequence[Field] = RENDER_ORDER,
) -> List[Tuple[Field, int]]:
    """Choose the columns that fit ``available_width`` and size them.

    Columns are admitted in ``priority_order`` at their minimum width plus
    spacing; leftover space is shared among the admitted flexible columns by
    factor. Returns ``(field, width)`` pairs in ``render_order``. Only the first
    priority column may overflow the width.
    """
    catalog = FIELD_WIDTHS if catalog is None else catalog
    if not priority_order:
        return []
    first = priority_order[0]
    shown = [first]
    used = catalog[first].min_width
    for f in priority_order[1:]:
        min_w = catalog[f].min_width
        if used + min_w + COLUMN_SPACING <= available_width:
            used += min_w + COLUMN_SPACING
            shown.append(f)

    total_flex = sum(catalog[f].factor for f in shown if isinstance(catalog[f], Flexible))
    fixed_total = sum(catalog[f].min_width for f in shown) + COLUMN_SPACING * (len(shown) - 1)
    remaining = max(available_width - fixed_total, 0)

    columns: List[Tuple[Field, int]] = []
    for f in render_order:
        if f not in shown:
            continue
        policy = catalog[f]
        if isinstance(policy, Flexible):
            extra = (remaining * policy.factor) // total_flex if total_flex else 0
            width = policy.min_width + extra
        else:
            width = policy.width
        columns.append((f, max(0, width)))
    return columns


# -----------------------------
# Board state
# -----------------------------
@dataclass
class IssueBoard:
    """Everything the event loop owns: issues, selection, mode and the input line."""
    issues: List[Issue] = field(default_factory=list)
    selection: SelectionState = field(default_factory=SelectionState)
    mode: Mode = Mode.NORMAL
    pending: PendingCount = field(default_factory=PendingCount)
    buffer: TextBuffer = field(default_factory=TextBuffer)
    sidebar_visible: bool = False
    running: bool = True
    status_line: str = ""

    @classmethod
    def from_issues(cls, issues: Sequence[Issue]) -> "IssueBoard":
        items = list(issues)
        return cls(issues=items, selection=SelectionState.initial(len(items)))

    def selected_issue(self) -> Optional[Issue]:
        idx = self.selection.index
        if idx is None or not (0 <= idx < len(self.issues)):
            return None
        return self.issues[idx]

    def handle_key(self, key: KeyEvent) -> Action:
        if self.mode is Mode.NORMAL:
            action = dispatch_normal(key, self.pending)
        else:
            action = dispatch_insert(key, self.buffer)
        self.apply(action)
        return action

    def apply(self, action: Action) -> None:
        kind = action.kind
        if kind is ActionKind.QUIT:
            self.running = False
        elif kind in (ActionKind.JUMP, ActionKind.SCROLL, ActionKind.GOTO_TOP, ActionKind.GOTO_BOTTOM):
            self.selection = move_selection(self.selection, len(self.issues), action)
        elif kind is ActionKind.ENTER_INPUT:
            self._set_mode(Mode.INSERT)
        elif kind is ActionKind.TOGGLE_SIDEBAR:
            self.sidebar_visible = not self.sidebar_visible
        elif kind is ActionKind.SUBMIT:
            self._submit()
        elif kind is ActionKind.CANCEL:
            # The typed text stays for the next time input mode is entered.
            self._set_mode(Mode.NORMAL)
        elif kind in (ActionKind.EDITED, ActionKind.NONE):
            pass

    def _set_mode(self, mode: Mode) -> None:
        if mode is not self.mode:
            logging.getLogger(LOGGER_NAME).debug("Mode %s -> %s", self.mode.value, mode.value)
        self.mode = mode

    def _submit(self) -> None:
        summary = self.buffer.text.strip()
        if summary:
            self.issues.append(Issue(summary=summary))
            self.selection = replace(self.selection, index=len(self.issues) - 1)
            self.status_line = f"Added: {summary}"
            logging.getLogger(LOGGER_NAME).info("Added local issue %r", summary)
        self.buffer.clear()
        self._set_mode(Mode.NORMAL)


# -----------------------------
# Theme
# -----------------------------
BASE_THEME_STYLE: Dict[str, str] = {
    'table.id': '#8a8a8a',
    'table.selected': 'bg:#000000 bold',
    'table.selected.inactive': 'bg:#262626',
    'table.empty': 'bold',
    'table.status.todo': '#87d7ff',
    'table.status.in_progress': '#ffd75f',
    'table.status.done': '#87ff5f',
    'table.status.blocked': '#ff8787',
    'table.status.other': '#d0d0d0',
    'table.priority.high': '#ff8787',
    'table.priority.medium': '#ffd75f',
    'table.priority.low': '#87ff5f',
    'table.priority.other': '#d0d0d0',
    'input': '#ffd75f',
    'input.placeholder': '#5f5f5f',
    'details.border': '#5f5f5f',
    'details.title': 'bold #ffd75f',
    'details.summary': 'bold',
    'details.label': '#ffd787',
    'details.empty': '#8a8a8a',
    'footer': 'reverse',
    'footer.normal': 'bg:ansiblue ansiblack bold',
    'footer.insert': 'bg:ansiyellow ansiblack bold',
}


def status_style(status: Optional[str]) -> str:
    s = (status or "").strip().lower()
    if s in ("done", "closed", "resolved"):
        return 'class:table.status.done'
    if "progress" in s or "review" in s:
        return 'class:table.status.in_progress'
    if "block" in s:
        return 'class:table.status.blocked'
    if s in ("to do", "todo", "open", "backlog", "selected for development"):
        return 'class:table.status.todo'
    return 'class:table.status.other'


def priority_style(priority: Optional[str]) -> str:
    p = (priority or "").strip().lower()
    if p in ("highest", "high", "blocker", "critical"):
        return 'class:table.priority.high'
    if p == "medium":
        return 'class:table.priority.medium'
    if p in ("low", "lowest", "minor", "trivial"):
        return 'class:table.priority.low'
    return 'class:table.priority.other'


# -----------------------------
# UI helpers (fragments only)
# -----------------------------
def _char_width(ch: str) -> int:
    """Return printable cell width for a single character."""
    return max(0, get_cwidth(ch))


def _display_width(text: str) -> int:
    return sum(_char_width(ch) for ch in text)


def _sanitize_cell_text(s: Optional[str]) -> str:
    return (s or "").replace("\n", " ").replace("\r", " ")


def _truncate(s: str, maxlen: int) -> str:
    """Truncate string to a maximum display width, preserving whole glyphs."""
    s = _sanitize_cell_text(s)
    if maxlen <= 0:
        return ""
    if _display_width(s) <= maxlen:
        return s
    ellipsis = "…"
    ell_w = _display_width(ellipsis)
    if maxlen <= ell_w:
        # No room for an ellipsis; keep what fits.
        out: List[str] = []
        width = 0
        for ch in s:
            ch_w = _char_width(ch)
            if width + ch_w > maxlen:
                break
            out.append(ch)
            width += ch_w
        return "".join(out)
    out = []
    width = 0
    for ch in s:
        ch_w = _char_width(ch)
        if width + ch_w + ell_w > maxlen:
            break
        out.append(ch)
        width += ch_w
    return "".join(out) + ellipsis


def _pad_display(text: Optional[str], width: int) -> str:
    """Pad/truncate text to an exact display width using spaces."""
    raw = _truncate(_sanitize_cell_text(text), width)
    return raw + " " * max(0, width - _display_width(raw))


def _cell(issue: Issue, f: Field) -> Tuple[str, str]:
    if f is Field.ID:
        return 'class:table.id', issue.id
    if f is Field.SUMMARY:
        return '', issue.summary
    if f is Field.STATUS:
        return status_style(issue.status), issue.status or ""
    return priority_style(issue.priority), issue.priority or ""


def build_table_fragments(board: IssueBoard, width: int, height: int) -> List[Tuple[str, str]]:
    """Rows of the issue table for a ``width`` x ``height`` area.

    Adjusts ``board.selection`` so the selected row stays visible.
    """
    if not board.issues:
        return [('class:table.empty', "No issues assigned.")]
    board.selection = follow_selection(board.selection, height)
    columns = layout_columns(width)
    start = board.selection.offset
    stop = min(len(board.issues), start + max(1, height))
    highlight = 'class:table.selected' if board.mode is Mode.NORMAL else 'class:table.selected.inactive'
    frags: List[Tuple[str, str]] = []
    for idx in range(start, stop):
        issue = board.issues[idx]
        row_style = highlight if idx == board.selection.index else ''
        used = 0
        for n, (f, col_w) in enumerate(columns):
            if n:
                frags.append((row_style, " " * COLUMN_SPACING))
                used += COLUMN_SPACING
            cell_style, text = _cell(issue, f)
            frags.append((f"{row_style} {cell_style}".strip(), _pad_display(text, col_w)))
            used += col_w
        if row_style and used < width:
            frags.append((row_style, " " * (width - used)))
        if idx != stop - 1:
            frags.append(('', "\n"))
    return frags


def build_input_fragments(board: IssueBoard) -> List[Tuple[str, str]]:
    if board.buffer.text:
        return [('', "  "), ('class:input', board.buffer.text)]
    return [('', "  "), ('class:input.placeholder', INPUT_PLACEHOLDER)]


def input_cursor_column(board: IssueBoard, width: int) -> int:
    """Screen column of the input cursor inside an input area of ``width`` cells."""
    inner = max(1, width - 4)  # two-cell margin on each side
    col = _display_width(board.buffer.text[:board.buffer.cursor])
    return 2 + min(col, inner - 1)


def _fmt_points(points: float) -> str:
    return f"{points:g}"


def build_detail_fragments(board: IssueBoard) -> List[Tuple[str, str]]:
    issue = board.selected_issue()
    frags: List[Tuple[str, str]] = [('class:details.title', "Details"), ('', "\n")]
    if issue is None:
        frags.append(('class:details.empty', "No issue selected"))
        return frags
    frags.append(('class:details.summary', issue.summary))
    frags.append(('', "\n\n"))
    meta = [
        ("ID", issue.id or None),
        ("Type", issue.issue_type),
        ("Status", issue.status),
        ("Priority", issue.priority),
        ("Points", _fmt_points(issue.story_points) if issue.story_points is not None else None),
        ("Epic", issue.parent_epic),
    ]
    shown = [(label, value) for label, value in meta if value]
    for label, value in shown:
        frags.append(('class:details.label', f"{label}: "))
        frags.append(('', f"{value}\n"))
    if shown and issue.description:
        frags.append(('', "\n"))
    if issue.description:
        frags.append(('', issue.description))
    return frags


def build_status_bar(board: IssueBoard) -> List[Tuple[str, str]]:
    if board.mode is Mode.INSERT:
        badge = ('class:footer.insert', " INSERT ")
    else:
        badge = ('class:footer.normal', " NORMAL ")
    total = len(board.issues)
    pos = board.selection.index + 1 if board.selection.index is not None and total else 0
    text = f" {pos}/{total}"
    if board.pending.value is not None:
        text += f"  {board.pending.value}"
    if board.status_line:
        text += "  " + board.status_line
    return [badge, ('class:footer', text)]


# -----------------------------
# TUI
# -----------------------------
def _screen_size() -> Tuple[int, int]:
    size = get_app().output.get_size()
    return size.columns, size.rows


def _list_width(board: IssueBoard, columns: int) -> int:
    if board.sidebar_visible:
        return columns * 60 // 100
    return columns


def build_application(
    board: IssueBoard,
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
    input=None,
    output=None,
) -> Application:
    """Wire the board into a full-screen prompt_toolkit Application.

    Every key press goes through ``board.handle_key``; the screen also redraws
    every ``refresh_interval`` seconds.
    """
    is_insert = Condition(lambda: board.mode is Mode.INSERT)
    sidebar_shown = Condition(lambda: board.sidebar_visible)

    def table_text() -> List[Tuple[str, str]]:
        columns, rows = _screen_size()
        # 2 rows of input below the table, 1 status row at the bottom
        return build_table_fragments(board, _list_width(board, columns), max(1, rows - 3))

    def cursor_position() -> Point:
        columns, _rows = _screen_size()
        return Point(x=input_cursor_column(board, _list_width(board, columns)), y=0)

    def left_width() -> Dimension:
        columns, _rows = _screen_size()
        return Dimension.exact(max(1, _list_width(board, columns)))

    table_window = Window(content=FormattedTextControl(text=table_text), wrap_lines=False, always_hide_cursor=True)
    input_control = FormattedTextControl(
        text=lambda: build_input_fragments(board),
        focusable=True,
        get_cursor_position=cursor_position,
    )
    input_window = Window(content=input_control, height=2, always_hide_cursor=~is_insert)
    detail_window = Window(
        content=FormattedTextControl(text=lambda: build_detail_fragments(board)),
        wrap_lines=True,
        always_hide_cursor=True,
    )
    status_window = Window(height=1, content=FormattedTextControl(text=lambda: build_status_bar(board)), style='class:footer')

    body = VSplit([
        HSplit([table_window, input_window], width=left_width),
        ConditionalContainer(
            VSplit([Window(width=1, char='│', style='class:details.border'), detail_window]),
            filter=sidebar_shown,
        ),
    ])
    root = HSplit([body, status_window])

    kb = KeyBindings()

    @kb.add(Keys.Any)
    def _(event):
        action = board.handle_key(key_event_from_press(event.key_sequence[0]))
        if action.kind is ActionKind.QUIT:
            event.app.exit()

    @kb.add(Keys.BracketedPaste)
    def _(event):
        # Pasted text only feeds the input line; it never runs normal-mode commands.
        if board.mode is not Mode.INSERT:
            return
        for key in paste_key_events(event.data):
            board.handle_key(key)

    app = Application(
        layout=Layout(root, focused_element=input_window),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(BASE_THEME_STYLE),
        refresh_interval=refresh_interval,
        input=input,
        output=output,
    )
    # Escape leaves input mode; don't wait long for a possible escape sequence.
    app.ttimeoutlen = 0.05
    return app


def run_ui(board: IssueBoard, refresh_interval: float = DEFAULT_REFRESH_INTERVAL) -> None:
    build_application(board, refresh_interval=refresh_interval).run()


# -----------------------------
# Logging
# -----------------------------
def setup_logging(log_path: str, log_level: str = 'ERROR') -> logging.Logger:
    """Send the module logger to a rotating file; the terminal belongs to the UI."""
    logger = logging.getLogger(LOGGER_NAME)
    # Always reset handlers so --log-level reliably controls file output.
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.DEBUG)
    directory = os.path.dirname(os.path.abspath(log_path))
    os.makedirs(directory, exist_ok=True)
    fh = RotatingFileHandler(log_path, maxBytes=2000000, backupCount=2, encoding='utf-8')
    lvl = getattr(logging, str(log_level).upper(), None)
    fh.setLevel(lvl if isinstance(lvl, int) else logging.ERROR)
    fh.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
    logger.addHandler(fh)
    return logger


# -----------------------------
# Utilities / Mock
# -----------------------------
def generate_mock_issues() -> List[Issue]:
    """Generate synthetic issues for offline demo & testing."""
    statuses = ["To Do", "In Progress", "In Review", "Blocked", None]
    priorities = ["Highest", "High", "Medium", "Low", None]
    types = ["Story", "Bug", "Task"]
    epics = ["Checkout revamp", "Search relevance", None]
    titles = [
        "Add retry banner to payment form",
        "Investigate flaky login test",
        "Document the release checklist",
        "Reduce cold start time of the API",
        "Migrate cron jobs to the scheduler",
        "Fix truncated labels in the sidebar",
        "Support dark mode in reports",
        "Clean up unused feature flags",
        "Paginate the audit log endpoint",
        "Upgrade the search index mapping",
        "Handle empty carts in the summary",
        "Review access for the staging bucket",
    ]
    rows: List[Issue] = []
    for i, title in enumerate(titles, start=1):
        rows.append(Issue(
            summary=title,
            description=f"Demo issue {i}. Nothing here is real." if i % 3 else "",
            id=f"DEMO-{i}",
            issue_type=types[i % len(types)],
            status=statuses[i % len(statuses)],
            priority=priorities[i % len(priorities)],
            story_points=float(i % 5 + 1) if i % 4 else None,
            parent_epic=epics[i % len(epics)],
        ))
    return rows


def load_issues(cfg: JiraConfig) -> List[Issue]:
    return [issue_from_jira(payload) for payload in fetch_assigned_issues(cfg)]


# -----------------------------
# CLI
# -----------------------------
def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Jira assigned-issues dashboard")
    ap.add_argument("--config", help="Optional YAML file (jql, max_results, refresh_interval)")
    ap.add_argument("--max-results", type=int, help="Maximum number of issues to fetch")
    ap.add_argument("--no-ui", action="store_true", help="Print a non-interactive summary and exit")
    ap.add_argument("--log-level", default="ERROR", help="File log level (DEBUG, INFO, WARNING, ERROR)")
    ap.add_argument("--log-file", default=os.path.expanduser("~/.jira_tasks.log"), help="Path to the log file")
    args = ap.parse_args(argv)

    logger = setup_logging(args.log_file, args.log_level)

    try:
        settings = load_config_file(args.config) if args.config else {}
        if os.environ.get("MOCK_FETCH") == "1":
            issues = generate_mock_issues()
        else:
            load_dotenv_values()
            try:
                cfg = JiraConfig.from_env()
            except ConfigError as e:
                raise ConfigError(f"Failed to load Jira config from environment: {e}") from e
            if "jql" in settings:
                cfg.jql = str(settings["jql"])
            if "max_results" in settings:
                cfg.max_results = int(settings["max_results"])
            if args.max_results is not None:
                if args.max_results <= 0:
                    raise ConfigError("--max-results must be positive")
                cfg.max_results = args.max_results
            issues = load_issues(cfg)
    except (ConfigError, FetchError, OSError, yaml.YAMLError) as e:
        logger.error("Startup failed: %s", e)
        print(e, file=sys.stderr)
        sys.exit(1)

    if args.no_ui:
        print(f"Issues: {len(issues)}")
        counts = Counter(issue.status or "-" for issue in issues)
        if counts:
            print("Statuses:", ", ".join(f"{name} {n}" for name, n in sorted(counts.items())))
        return

    board = IssueBoard.from_issues(issues)
    refresh = float(settings.get("refresh_interval", DEFAULT_REFRESH_INTERVAL))
    run_ui(board, refresh_interval=refresh)


if __name__ == "__main__":
    main()
