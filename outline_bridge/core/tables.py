"""
Table transpiler.

Converts between markdown pipe tables and the outliner's chained-bullet
table encoding, where a "{{[[table]]}}" block holds one chain per row and
every cell is nested one level below the previous cell of the same row:

    - {{[[table]]}}
      - **A**
        - **B**
      - 1
        - 2

Also prints tables as HTML. Parsers return None for anything that is not a
table; callers then pass the original lines through unchanged.
"""

import re
from typing import Callable, List, Optional, Tuple

from .types import PAD_CELL, Alignment, TableModel

CellRenderer = Callable[[str], str]

TABLE_MARKER = "{{[[table]]}}"
TABLE_MARKER_PATTERN = re.compile(r"\{\{\[\[table\]\]\}\}", re.IGNORECASE)

SEPARATOR_PATTERN = re.compile(r"^\|?\s*:?-+:?\s*(?:\|\s*:?-+:?\s*)+\|?$|^\|\s*:?-+:?\s*\|$")
_PIPE_SPLIT = re.compile(r"(?<!\\)\|")

ALIGNMENT_MARKS = {
    Alignment.NONE: "---",
    Alignment.LEFT: ":---",
    Alignment.CENTER: ":---:",
    Alignment.RIGHT: "---:",
}

HEADER_DECORATIONS = ("**", "^^", "__", "==", "*", "_")


def _identity(cell: str) -> str:
    return cell


def split_row(line: str) -> List[str]:
    """Split a pipe row into trimmed cells; "\\|" is a literal pipe."""
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|") and not body.endswith("\\|"):
        body = body[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _PIPE_SPLIT.split(body)]


def parse_alignment(cell: str) -> Alignment:
    cell = cell.strip()
    if cell.startswith(":") and cell.endswith(":"):
        return Alignment.CENTER
    if cell.endswith(":"):
        return Alignment.RIGHT
    if cell.startswith(":"):
        return Alignment.LEFT
    return Alignment.NONE


def strip_decoration(cell: str) -> str:
    """Remove wrapping bold/highlight/italic marks from a header cell."""
    cell = cell.strip()
    changed = True
    while changed:
        changed = False
        for mark in HEADER_DECORATIONS:
            if len(cell) > 2 * len(mark) and cell.startswith(mark) and cell.endswith(mark):
                cell = cell[len(mark):-len(mark)].strip()
                changed = True
                break
    return cell


def _is_bold(text: str) -> bool:
    return len(text) > 4 and text.startswith("**") and text.endswith("**")


def _indent(level: int) -> str:
    return "  " * level


class TableTranspiler:
    """Bidirectional pipe table / chained-bullet table converter."""

    def parse_markdown(self, lines: List[str]) -> Optional[TableModel]:
        """
        Parse a run of pipe-table lines.

        Args:
            lines: Header row, separator row and data rows

        Returns:
            TableModel, or None when there is no separator or no data row
        """
        if len(lines) < 3 or not SEPARATOR_PATTERN.match(lines[1].strip()):
            return None

        header = split_row(lines[0])
        alignments = [parse_alignment(cell) for cell in split_row(lines[1])]
        rows = [split_row(line) for line in lines[2:] if line.strip()]
        if not rows:
            return None
        return TableModel(header_cells=header, alignments=alignments, rows=rows)

    def to_outline(self, model: TableModel, level: int = 0, render_cell: CellRenderer = _identity) -> List[str]:
        """
        Encode a table as a chained-bullet block.

        Args:
            model: Table to encode
            level: Indentation level of the table marker bullet
            render_cell: Converts cell text to outline inline syntax

        Returns:
            Outline lines, marker first
        """
        lines = [f"{_indent(level)}- {TABLE_MARKER}"]
        for row_index, row in enumerate([model.header_cells] + model.rows):
            for column, cell in enumerate(row):
                text = render_cell(cell.strip()) if cell.strip() else ""
                if row_index == 0 and text and not _is_bold(text):
                    text = f"**{text}**"
                lines.append(f"{_indent(level + 1 + column)}- {text}".rstrip())
        return lines

    def parse_outline(self, lines: List[Tuple[int, str]], base_level: int = 0) -> Optional[TableModel]:
        """
        Decode the descendants of a "{{[[table]]}}" block.

        Args:
            lines: (indent level, bullet text) pairs for every descendant
            base_level: Indentation level of the table marker

        Returns:
            TableModel, or None when the block holds no rows
        """
        rows: List[List[str]] = []
        current: Optional[List[str]] = None
        for level, content in lines:
            column = level - base_level - 1
            if column < 0:
                continue
            content = content.strip() or PAD_CELL
            if current is None or column == 0:
                current = [PAD_CELL] * column + [content]
                rows.append(current)
            elif column >= len(current):
                current.extend([PAD_CELL] * (column - len(current)))
                current.append(content)
            else:
                # A branch: the outliner shows it as a new row under the shared leading cells
                current = [PAD_CELL] * column + [content]
                rows.append(current)

        if not rows:
            return None
        header = [strip_decoration(cell) or PAD_CELL for cell in rows[0]]
        return TableModel(header_cells=header, rows=rows[1:])

    def to_markdown(self, model: TableModel, render_cell: CellRenderer = _identity) -> List[str]:
        def _row(cells: List[str]) -> str:
            rendered = [render_cell(cell.strip()).replace("|", "\\|") or PAD_CELL for cell in cells]
            return "| " + " | ".join(rendered) + " |"

        separator = "| " + " | ".join(ALIGNMENT_MARKS[alignment] for alignment in model.alignments) + " |"
        return [_row(model.header_cells), separator] + [_row(row) for row in model.rows]

    def to_html(self, model: TableModel, render_cell: CellRenderer = _identity) -> str:
        def _cells(tag: str, cells: List[str]) -> str:
            parts = []
            for alignment, cell in zip(model.alignments, cells):
                style = f' style="text-align: {alignment.value}"' if alignment != Alignment.NONE else ""
                parts.append(f"<{tag}{style}>{render_cell(cell.strip())}</{tag}>")
            return "<tr>" + "".join(parts) + "</tr>"

        body = "".join(_cells("td", row) for row in model.rows)
        return (
            '<table class="markdown-table">'
            f"<thead>{_cells('th', model.header_cells)}</thead>"
            f"<tbody>{body}</tbody>"
            "</table>"
        )
