import jira_task_viewer as jtv

from .helpers import ctrl, feed, key, keys, make_issue, type_text

A = jtv.ActionKind


def test_count_jump_moves_selection(board):
    type_text(board, '3j')
    assert board.selection.index == 3
    type_text(board, '2k')
    assert board.selection.index == 1
    type_text(board, '99j')
    assert board.selection.index == 4
    type_text(board, 'g')
    assert board.selection.index == 0
    type_text(board, 'G')
    assert board.selection.index == 4


def test_pending_count_visible_until_consumed(board):
    type_text(board, '12')
    assert board.pending.value == 12
    assert board.selection.index == 0
    type_text(board, 's')
    assert board.pending.value is None
    assert board.sidebar_visible is True
    assert board.selection.index == 0


def test_insert_and_submit_adds_selected_issue(board):
    actions = feed(board, [key('i')] + keys('Write release notes') + [key('enter')])
    assert actions[0] == jtv.Action(A.ENTER_INPUT)
    assert actions[-1] == jtv.Action(A.SUBMIT)
    assert board.mode is jtv.Mode.NORMAL
    assert len(board.issues) == 6
    added = board.issues[-1]
    assert added.summary == 'Write release notes'
    assert added.id == ''
    assert added.status is None
    assert board.selected_issue() is added
    assert board.buffer.text == ''
    assert board.buffer.cursor == 0
    assert 'Write release notes' in board.status_line


def test_submit_trims_surrounding_whitespace(board):
    feed(board, [key('i')] + keys('  padded  ') + [key('enter')])
    assert board.issues[-1].summary == 'padded'


def test_whitespace_only_submit_adds_nothing(board):
    feed(board, [key('i')] + keys('   ') + [key('enter')])
    assert len(board.issues) == 5
    assert board.mode is jtv.Mode.NORMAL
    assert board.buffer.text == ''
    assert board.selection.index == 0


def test_cancel_keeps_draft_for_next_time(board):
    feed(board, [key('i')] + keys('draft') + [key('escape')])
    assert board.mode is jtv.Mode.NORMAL
    assert len(board.issues) == 5
    assert board.buffer.text == 'draft'
    feed(board, [key('i')] + keys('!') + [key('enter')])
    assert board.issues[-1].summary == 'draft!'


def test_insert_mode_swallows_navigation_keys(board):
    feed(board, [key('i')] + keys('jjq'))
    assert board.running is True
    assert board.selection.index == 0
    assert board.buffer.text == 'jjq'
    feed(board, [ctrl('w'), key('escape')])
    assert board.buffer.text == ''


def test_quit_stops_the_loop(board):
    actions = type_text(board, 'q')
    assert actions == [jtv.Action(A.QUIT)]
    assert board.running is False


def test_scroll_does_not_move_selection(board):
    feed(board, keys('2') + [ctrl('e')])
    assert board.selection.offset == 2
    assert board.selection.index == 0


def test_empty_board_navigation():
    board = jtv.IssueBoard.from_issues([])
    assert board.selected_issue() is None
    type_text(board, 'jkgGd')
    assert board.selection.index is None
    feed(board, [key('i')] + keys('first') + [key('enter')])
    assert board.selection.index == 0
    assert board.selected_issue().summary == 'first'


def test_toggle_sidebar_twice(board):
    type_text(board, 'ss')
    assert board.sidebar_visible is False


def test_selected_issue_follows_index(issues):
    board = jtv.IssueBoard.from_issues(issues + [make_issue(6, summary='last')])
    type_text(board, 'G')
    assert board.selected_issue().summary == 'last'
