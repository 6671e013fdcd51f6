"""Unit tests for table rendering utilities."""

from datetime import date

from icaresync.domain.services import InventoryQueryService
from icaresync.ui.tables import create_gap_table, create_statistics_table


class TestStatisticsTable:
    """Test inventory statistics table creation."""

    def test_title_and_rows(self, sample_catalog):
        stats = InventoryQueryService.get_statistics(sample_catalog)

        table = create_statistics_table(stats)

        assert table.title == "Inventory 05kmCPro.v4.51"
        assert table.row_count == 10
        fields = list(table.columns[0].cells)
        assert "Date range" in fields
        assert "Removed on server" in fields
        values = list(table.columns[1].cells)
        assert "2020-06-10 to 2020-06-14" in values

    def test_empty_inventory(self, empty_catalog):
        table = create_statistics_table(InventoryQueryService.get_statistics(empty_catalog))

        assert "[dim]empty[/dim]" in list(table.columns[1].cells)


class TestGapTable:
    """Test gap table creation."""

    def test_rows_and_day_count(self):
        ranges = [
            (date(2020, 1, 2), date(2020, 1, 4)),
            (date(2020, 1, 9), date(2020, 1, 9)),
        ]

        table = create_gap_table(ranges)

        assert table.title == "Data gaps (4 days)"
        assert table.row_count == 2
        assert list(table.columns[2].cells) == ["3", "1"]

    def test_column_headers(self):
        table = create_gap_table([])

        assert [col.header for col in table.columns] == ["First", "Last", "Days"]
