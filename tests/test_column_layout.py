import pytest

import jira_task_viewer as jtv

F = jtv.Field


def total_width(columns):
    return sum(w for _f, w in columns) + jtv.COLUMN_SPACING * max(0, len(columns) - 1)


def test_width_40_shows_everything_in_render_order():
    columns = jtv.layout_columns(40)
    assert columns == [(F.ID, 8), (F.PRIORITY, 1), (F.SUMMARY, 20), (F.STATUS, 5)]
    assert total_width(columns) == 40


def test_layout_is_deterministic():
    assert jtv.layout_columns(40) == jtv.layout_columns(40)
    assert jtv.layout_columns(73) == jtv.layout_columns(73)


def test_flexible_columns_share_leftover_space():
    columns = dict(jtv.layout_columns(100))
    # 60 spare cells split 5:1 between summary and status
    assert columns[F.SUMMARY] == 20 + 50
    assert columns[F.STATUS] == 5 + 10
    assert columns[F.ID] == 8
    assert columns[F.PRIORITY] == 1


def test_narrow_width_drops_lowest_priority_columns():
    assert jtv.layout_columns(30) == [(F.PRIORITY, 1), (F.SUMMARY, 20), (F.STATUS, 5)]
    assert jtv.layout_columns(27) == [(F.SUMMARY, 20), (F.STATUS, 5)]
    # status no longer fits, the 1-cell priority column still does
    assert jtv.layout_columns(26) == [(F.PRIORITY, 1), (F.SUMMARY, 23)]
    assert jtv.layout_columns(22) == [(F.SUMMARY, 22)]


def test_lower_priority_column_can_fill_a_gap():
    # ID (8) no longer fits but the 1-cell priority column still does
    fields = [f for f, _w in jtv.layout_columns(36)]
    assert F.ID not in fields
    assert F.PRIORITY in fields


def test_first_priority_column_always_shown_even_if_too_wide():
    assert jtv.layout_columns(10) == [(F.SUMMARY, 20)]
    assert jtv.layout_columns(0) == [(F.SUMMARY, 20)]


@pytest.mark.parametrize('width', list(range(20, 161)))
def test_never_wider_than_viewport(width):
    columns = jtv.layout_columns(width)
    assert columns[0][0] in (F.ID, F.PRIORITY, F.SUMMARY)
    assert F.SUMMARY in dict(columns)
    assert total_width(columns) <= width
    order = [f for f, _w in columns]
    assert order == [f for f in jtv.RENDER_ORDER if f in order]


def test_custom_catalog_without_flexible_fields():
    catalog = {F.ID: jtv.Fixed(4), F.SUMMARY: jtv.Fixed(10)}
    columns = jtv.layout_columns(30, catalog, (F.SUMMARY, F.ID), (F.ID, F.SUMMARY))
    assert columns == [(F.ID, 4), (F.SUMMARY, 10)]


def test_empty_priority_order_yields_nothing():
    assert jtv.layout_columns(80, priority_order=()) == []
