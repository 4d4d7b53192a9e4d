"""Markdown export of a grid."""
from typing import Any, List, Mapping, Optional

from gridagent.models.grid import CellState, ColumnType, Grid
from gridagent.services.columns import COLUMN_TYPES, ColumnTypeDescriptor

PRIMARY_HEADER = "Primary Column"


def escape_markdown(text: str) -> str:
    """Escape table separators and flatten newlines for a markdown table cell."""
    return text.replace("|", "\\|").replace("\r\n", "\n").replace("\n", "<br>")


def format_cell(descriptor: ColumnTypeDescriptor, state: CellState, response: Any, error: Optional[str] = None) -> str:
    if state == CellState.ERROR:
        return escape_markdown(f"Error: {error}") if error else ""
    if state != CellState.DONE:
        return ""
    return escape_markdown(descriptor.render_text(response))


def generate_markdown_table(
    grid: Grid,
    column_types: Optional[Mapping[ColumnType, ColumnTypeDescriptor]] = None
) -> str:
    """One row per primary row, one column per grid column."""
    column_types = column_types or COLUMN_TYPES
    headers = [PRIMARY_HEADER, *(column.title for column in grid.columns)]

    rows: List[List[str]] = []
    for index, row in enumerate(grid.rows):
        cells = [escape_markdown(row.display_value)]
        for column in grid.columns:
            if index < len(column.cells):
                cell = column.cells[index]
                cells.append(format_cell(column_types[column.type], cell.state, cell.response, cell.error))
            else:
                cells.append("")
        rows.append(cells)

    header_row = f"| {' | '.join(escape_markdown(h) for h in headers)} |"
    separator_row = f"| {' | '.join('---' for _ in headers)} |"
    data_rows = [f"| {' | '.join(cells)} |" for cells in rows]
    return "\n".join([header_row, separator_row, *data_rows])
