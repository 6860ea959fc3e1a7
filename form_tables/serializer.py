"""
Table serializer: turns a (possibly mutated) TableBlock back into markup and
splices it into the document at the exact span it was parsed from.
"""

from .schemas import Cell, Row, TableBlock


def serialize_cell(cell: Cell) -> str:
    return f"{cell.prefix}{cell.open_tag}{cell.inner}{cell.close_tag}"


def serialize_row(row: Row) -> str:
    cells = "".join(serialize_cell(cell) for cell in row.cells)
    return f"{row.prefix}{row.open_tag}{cells}{row.trailing}{row.close_tag}"


def serialize(table: TableBlock) -> str:
    """
    Rebuild the table region.

    Untouched cells come out exactly as parsed, down to whitespace, because
    every field holds the original source text.
    """
    rows = "".join(serialize_row(row) for row in table.rows)
    return f"{table.open_tag}{rows}{table.trailing}{table.close_tag}"


def splice(document: str, table: TableBlock) -> str:
    """Replace the table's original span in the document with its serialization."""
    return document[:table.start] + serialize(table) + document[table.end:]
