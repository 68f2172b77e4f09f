from types import SimpleNamespace

from prompt_toolkit.key_binding.key_processor import KeyPress

import jira_task_viewer as jtv


def make_issue(n: int = 1, **overrides) -> jtv.Issue:
    base = dict(
        summary=f'Issue {n}',
        description=f'Description {n}',
        id=f'PROJ-{n}',
        issue_type='Story',
        status='To Do',
        priority='Medium',
    )
    base.update(overrides)
    return jtv.Issue(**base)


def key(name: str) -> jtv.KeyEvent:
    return jtv.KeyEvent(name)


def ctrl(name: str) -> jtv.KeyEvent:
    return jtv.KeyEvent(name, ctrl=True)


def keys(text: str):
    """One KeyEvent per character of ``text``."""
    return [jtv.KeyEvent(ch) for ch in text]


def feed(board: jtv.IssueBoard, events):
    return [board.handle_key(ev) for ev in events]


def type_text(board: jtv.IssueBoard, text: str):
    return feed(board, keys(text))


def dummy_event(press: KeyPress, exit_calls=None):
    calls = exit_calls if exit_calls is not None else []
    app = SimpleNamespace(exit=lambda: calls.append(True))
    return SimpleNamespace(key_sequence=[press], app=app, data=press.data)


def fragment_text(fragments) -> str:
    return ''.join(text for _style, text in fragments)


__all__ = [
    'make_issue',
    'key',
    'ctrl',
    'keys',
    'feed',
    'type_text',
    'dummy_event',
    'fragment_text',
]
