"""
tests/test_rejected_row_exporter.py

Unit tests for the rejected-row workbook writer.
"""

from __future__ import annotations

from pathlib import Path

from openpyxl import load_workbook

from excel_import.domain.import_models import RejectedRow, RowRejection, RowRejectionCode
from excel_import.services.rejected_row_exporter import RejectedRowExporter


def _rejected(cells: tuple[str, ...], row_index: int, code: RowRejectionCode = RowRejectionCode.MISSING_VALUE) -> RejectedRow:
    rejection = RowRejection(code=code, row_index=row_index, message=f"problem on row {row_index}")
    return RejectedRow(
        raw_cells=cells,
        reason=rejection.reason,
        row_index=row_index,
        sheet_row=row_index + 1,
        rejection=rejection,
    )


class TestRejectedRowExporter:
    def test_empty_export_writes_header_only(self, tmp_path: Path, read_export) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path / "out")

        path = exporter.export(filename="failed.xlsx", header_cells=("name", "age"), rejected_rows=[])

        assert path == tmp_path / "out" / "failed.xlsx"
        exported = read_export(path)
        assert exported.header == ("name", "age", "reason")
        assert exported.rows == []

    def test_rows_keep_stream_order_and_reason(self, tmp_path: Path, read_export) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path)
        rows = [
            _rejected(("Ann", "x"), 2, RowRejectionCode.TYPE_MISMATCH),
            _rejected(("Bob", "y"), 5),
        ]

        exported = read_export(exporter.export(filename="f", header_cells=("name", "age"), rejected_rows=rows))

        assert [row[0] for row in exported.rows] == ["Ann", "Bob"]
        assert exported.rows[0][-1] == "TypeMismatch: problem on row 2"
        assert exported.rows[1][-1] == "MissingValue: problem on row 5"

    def test_short_rows_keep_reason_in_trailing_column(self, tmp_path: Path, read_export) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path)

        exported = read_export(
            exporter.export(
                filename="f.xlsx",
                header_cells=("name", "age", "email"),
                rejected_rows=[_rejected(("Ann",), 1)],
            )
        )

        assert exported.header[3] == "reason"
        assert exported.rows[0][0] == "Ann"
        assert exported.rows[0][3] == "MissingValue: problem on row 1"

    def test_wide_rows_extend_header(self, tmp_path: Path, read_export) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path)

        exported = read_export(
            exporter.export(
                filename="f.xlsx",
                header_cells=("name",),
                rejected_rows=[_rejected(("Ann", "extra"), 1)],
            )
        )

        assert exported.header[-1] == "reason"
        assert len(exported.header) == 3
        assert exported.rows[0][:2] == ("Ann", "extra")

    def test_filename_is_normalized(self, tmp_path: Path) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path)

        assert exporter.resolve_path("bad_rows") == tmp_path / "bad_rows.xlsx"
        assert exporter.resolve_path("bad_rows.xlsx") == tmp_path / "bad_rows.xlsx"
        assert exporter.resolve_path("") == tmp_path / "rejected_rows.xlsx"
        assert exporter.resolve_path(None) == tmp_path / "rejected_rows.xlsx"

    def test_formula_like_text_stays_text(self, tmp_path: Path) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path)

        path = exporter.export(
            filename="f.xlsx",
            header_cells=("name", "=age"),
            rejected_rows=[_rejected(("Ann", "=1+1", '=HYPERLINK("http://x")'), 1, RowRejectionCode.TYPE_MISMATCH)],
        )

        workbook = load_workbook(path)
        try:
            worksheet = workbook.worksheets[0]
            assert worksheet["B1"].value == "=age"
            assert worksheet["B1"].data_type == "s"
            assert worksheet["B2"].value == "=1+1"
            assert worksheet["B2"].data_type == "s"
            assert worksheet["C2"].value == '=HYPERLINK("http://x")'
            assert worksheet["C2"].data_type == "s"
            assert worksheet["A2"].value == "Ann"
        finally:
            workbook.close()

    def test_export_overwrites_previous_file(self, tmp_path: Path, read_export) -> None:
        exporter = RejectedRowExporter(base_path=tmp_path)
        exporter.export(filename="f.xlsx", header_cells=("name",), rejected_rows=[_rejected(("Ann",), 1)])

        exported = read_export(exporter.export(filename="f.xlsx", header_cells=("name",), rejected_rows=[]))

        assert exported.rows == []
