"""
excel_import/readers package marker.
"""

from excel_import.readers.xlsx_reader import SheetRowStream, iter_sheet_rows, stringify_cell

__all__ = [
    "SheetRowStream",
    "iter_sheet_rows",
    "stringify_cell",
]
