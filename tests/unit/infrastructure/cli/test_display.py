import pytest
from unittest.mock import MagicMock

from rich.panel import Panel
from rich.table import Table

from newscache.infrastructure.cli.display import ConsoleDisplay, format_bytes


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    return ConsoleDisplay(console=mock_console)


def test_display_info_prints_panel(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_info("Cache cleared successfully.")
    mock_console.print.assert_called_once()
    (panel,), _ = mock_console.print.call_args
    assert isinstance(panel, Panel)
    assert "Info" in panel.title


def test_display_error_prints_panel(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("boom")
    (panel,), _ = mock_console.print.call_args
    assert "Error" in panel.title


def test_display_table(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_table("Data cache", ("Property", "Value"), [("Files", 3)])
    (table,), _ = mock_console.print.call_args
    assert isinstance(table, Table)
    assert table.row_count == 1
    assert [c.header for c in table.columns] == ["Property", "Value"]


@pytest.mark.parametrize("size, expected", [
    (0, "0 B"),
    (1023, "1023 B"),
    (1536, "1.5 KB"),
    (5 * 1024 * 1024, "5.0 MB"),
])
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected
