import os
import sys

import pytest

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

import jira_task_viewer as jtv

from .ui_state.helpers import make_issue


@pytest.fixture
def issues():
    return [make_issue(n) for n in range(1, 6)]


@pytest.fixture
def board(issues):
    return jtv.IssueBoard.from_issues(issues)


@pytest.fixture
def jira_env(monkeypatch):
    """Set the three required JIRA_TUI_* variables."""
    monkeypatch.setenv('JIRA_TUI_URL', 'https://example.atlassian.net/')
    monkeypatch.setenv('JIRA_TUI_USER', 'me@example.com')
    monkeypatch.setenv('JIRA_TUI_TOKEN', 'secret')
    return os.environ


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any JIRA_TUI_* / MOCK_FETCH values inherited from the shell."""
    for name in jtv.ENV_KEYS + ('MOCK_FETCH',):
        # setenv first so values written later (e.g. by .env loading) are undone too
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


@pytest.fixture
def log_file(tmp_path):
    return str(tmp_path / 'jira_tasks.log')
