import pytest

from sqlsls.commands import (
    EXECUTE_QUERY,
    SHOW_TABLES,
    VerticalTableWriter,
    code_actions,
    extract_range_text,
)


@pytest.mark.parametrize(
    "text, start_line, start_char, end_line, end_char, want",
    [
        ("select * from city", 0, 0, 0, 8, "select *"),
        ("select 1;\nselect 2;\nselect 3;", 0, 7, 2, 8, "1;\nselect 2;\nselect 3"),
        ("select 1;\nselect 2;\nselect 3;", 1, 2, 1, 6, "lect"),
    ],
    ids=[
        "extract single line",
        "extract multi line with not equal start end",
        "extract multi line with equal start end",
    ],
)
def test_extract_range_text(text, start_line, start_char, end_line, end_char, want):
    assert extract_range_text(text, start_line, start_char, end_line, end_char) == want


def test_extract_range_text_strips_carriage_returns():
    text = "select 1;\r\nselect 2;\r\n"
    assert extract_range_text(text, 0, 0, 1, 9) == "select 1;\nselect 2;"


def test_extract_range_text_outside_line():
    with pytest.raises(ValueError):
        extract_range_text("select 1;", 0, 0, 0, 50)


def test_extract_range_text_lines_outside_text():
    assert extract_range_text("select 1;", 3, 0, 4, 1) == ""


def test_code_actions():
    actions = code_actions("file:///test.sql")
    assert [a.title for a in actions] == [
        "Execute Query",
        "Show Databases",
        "Show Schemas",
        "Show Connections",
        "Switch Database",
        "Switch Connections",
        "Show Tables",
    ]
    assert actions[0].command == EXECUTE_QUERY
    assert actions[0].arguments == ["file:///test.sql"]
    assert actions[-1].command == SHOW_TABLES
    assert all(a.arguments == [] for a in actions[1:])


def test_vertical_table_render():
    table = VerticalTableWriter()
    table.set_headers(["id", "name"])
    table.append_row(["1", "Kabul"])
    table.append_row(["2", "Qandahar"])
    assert table.render() == (
        "***************************[ 1. row ]***************************\n"
        "  id | 1\n"
        "name | Kabul\n"
        "***************************[ 2. row ]***************************\n"
        "  id | 2\n"
        "name | Qandahar\n"
    )


def test_vertical_table_header_width():
    table = VerticalTableWriter()
    table.set_headers(["a", "population"])
    assert table.header_max_len == len("population")


def test_vertical_table_no_rows():
    table = VerticalTableWriter()
    table.set_headers(["id"])
    assert table.render() == ""


def test_vertical_table_row_wider_than_headers():
    table = VerticalTableWriter()
    table.set_headers(["id"])
    table.append_row(["1", "extra"])
    with pytest.raises(ValueError):
        table.render()