"""
Table reconstruction from extracted PDF text.

Two strategies run on every document:
- Line items: a layout template describes where each column of an item
  sits relative to its item-number line.
- Generic tables: runs of consecutive lines with two or more
  whitespace-separated columns.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from ..models import GenericTable, LineItem, LineItemCell, LineItemTable, TableCell

logger = logging.getLogger(__name__)

LINE_ITEM_CONFIDENCE = 0.90
GENERIC_CELL_CONFIDENCE = 0.80

_COLUMN_SPLIT = re.compile(r"\s{2,}|\t")
# ASCII only: int() accepts digits from any script, so \d must not
_INTEGER = re.compile(r"^\d+$", re.ASCII)
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
_CURRENCY = re.compile(r"\$\s*([0-9,]+\.?\d{0,2})", re.ASCII)

# Reads one trimmed, non-empty line; returns the value to store or None.
CellParser = Callable[[str], str | None]


# =============================================================================
# Cell Parsers
# =============================================================================


def _full_match(pattern: str) -> CellParser:
    compiled = re.compile(pattern, re.ASCII)

    def parse(line: str) -> str | None:
        return line if compiled.match(line) else None

    return parse


def _currency(line: str) -> str | None:
    match = _CURRENCY.search(line)
    return match.group(1) if match else None


def _description(line: str) -> str | None:
    if (line[0].isascii() and line[0].isdigit()) or "$" in line or _ISO_DATE.match(line):
        return None
    return line


def _tax_percent(line: str) -> str | None:
    if _INTEGER.match(line) and int(line) <= 30:
        return f"{line}%"
    return None


# =============================================================================
# Layout Templates
# =============================================================================


@dataclass(frozen=True)
class LayoutTemplate:
    """
    Where the parts of a line item sit in the extracted text.

    Attributes:
        name: Identifier used in logs.
        header_anchor: First token of the line that starts the table header.
        header_tokens: Tokens that must all appear in the header window.
        header_window: Number of lines (anchor included) searched for tokens.
        item_number: Pattern for a line that opens a new item.
        min_item_number: Smallest numeric value accepted as an item number.
        stride: Number of lines after the item number that belong to it.
        columns: Offset (1-based, relative to the item number) to
            (LineItem field, parser). Several offsets may feed the same
            field; their values are joined with a space.
        required_fields: An item is kept only if one of these is populated.
        stop_markers: Substrings that end the table.
        repeat_header_gap: A new anchor this many lines past the header
            ends the table.
        headers: Column titles reported on the resulting table.
    """

    name: str
    header_anchor: str
    header_tokens: tuple[str, ...]
    header_window: int
    item_number: re.Pattern[str]
    min_item_number: int
    stride: int
    columns: dict[int, tuple[str, CellParser]]
    required_fields: tuple[str, ...]
    stop_markers: tuple[str, ...]
    repeat_header_gap: int
    headers: tuple[str, ...] = field(default_factory=tuple)

    def find_header_end(self, lines: list[str]) -> int | None:
        """
        Locate the table header.

        Returns:
            Index of the first line after the header, or None when no header
            is present.
        """
        for i, raw in enumerate(lines):
            tokens = raw.split()
            if not tokens or tokens[0] != self.header_anchor:
                continue

            seen = ""
            for j in range(min(self.header_window, len(lines) - i)):
                seen += lines[i + j].strip() + " "
                if all(token in seen for token in self.header_tokens):
                    return i + j + 1
        return None

    def is_stop_line(self, line: str, index: int, header_end: int) -> bool:
        if any(marker in line for marker in self.stop_markers):
            return True
        return line == self.header_anchor and index > header_end + self.repeat_header_gap

    def parse_item(self, item_number: str, block: list[str]) -> LineItem | None:
        """Build a LineItem from the lines following its item number."""
        values: dict[str, str] = {}
        for offset, raw in enumerate(block, start=1):
            line = raw.strip()
            if not line or offset not in self.columns:
                continue

            field_name, parser = self.columns[offset]
            value = parser(line)
            if value is None:
                continue
            if values.get(field_name):
                values[field_name] += " " + value
            else:
                values[field_name] = value

        if not any(values.get(name) for name in self.required_fields):
            return None
        return LineItem(item_number=item_number, **values)


PURCHASE_ORDER_LAYOUT = LayoutTemplate(
    name="purchase-order",
    header_anchor="ITEM",
    header_tokens=("ITEM", "UNIT", "QTY", "DESCRIPTION"),
    header_window=10,
    item_number=re.compile(r"^(\d{2,3})$", re.ASCII),
    min_item_number=10,
    stride=11,
    columns={
        1: ("unit", _full_match(r"^[A-Z]{1,3}$")),
        2: ("quantity", _full_match(r"^\d+$")),
        # 3 is a spacer line
        4: ("part_number", _full_match(r"^\d{10,}$")),
        5: ("description", _description),
        6: ("description", _description),
        7: ("due_date", _full_match(r"^\d{4}-\d{2}-\d{2}$")),
        8: ("price", _currency),
        9: ("tax_percent", _tax_percent),
        10: ("discount", _full_match(r"^\d+%$")),
        11: ("line_total", _currency),
    },
    required_fields=("unit", "quantity", "part_number", "description"),
    stop_markers=("SUBTOTAL", "GRAND TOTAL"),
    repeat_header_gap=20,
    headers=(
        "ITEM",
        "UNIT",
        "QTY",
        "PART NO",
        "DESCRIPTION",
        "DUE DATE",
        "PRICE",
        "TAX%",
        "DISC",
        "LINE TOTAL",
    ),
)


# =============================================================================
# Extraction
# =============================================================================


def extract_line_items(
    text: str, layout: LayoutTemplate = PURCHASE_ORDER_LAYOUT
) -> list[LineItem]:
    """
    Reconstruct line items from text laid out one cell per line.

    Args:
        text: Full document text.
        layout: Template describing the item layout.

    Returns:
        Line items in document order. Empty when no header is found.
    """
    lines = text.split("\n")
    header_end = layout.find_header_end(lines)
    if header_end is None:
        logger.debug("No '%s' table header found", layout.name)
        return []

    logger.debug("Starting line item parsing at line %d", header_end)

    items: list[LineItem] = []
    i = header_end
    while i < len(lines):
        line = lines[i].strip()

        if layout.is_stop_line(line, i, header_end):
            break

        match = layout.item_number.match(line)
        if not match or int(match.group(1)) < layout.min_item_number:
            i += 1
            continue

        block = lines[i + 1 : i + 1 + layout.stride]
        item = layout.parse_item(match.group(1), block)
        if item is not None:
            items.append(item)
            logger.debug("Extracted item %s: %s", item.item_number, item.description)

        # Skip past this item's data
        i += layout.stride + 1

    logger.info("Extracted %d line items", len(items))
    return items


def _build_generic_table(rows: list[str]) -> GenericTable:
    return GenericTable(
        row_count=len(rows),
        column_count=max(len(_COLUMN_SPLIT.split(row)) for row in rows),
        cells=[
            TableCell(content=row, row_index=index, confidence=GENERIC_CELL_CONFIDENCE)
            for index, row in enumerate(rows)
        ],
    )


def extract_generic_tables(text: str) -> list[GenericTable]:
    """
    Detect tables made of consecutive multi-column lines.

    A line belongs to a table when it splits into at least two columns on
    runs of two or more spaces or on tabs. Runs of a single line are
    ignored.
    """
    tables: list[GenericTable] = []
    current: list[str] = []

    for raw in text.split("\n"):
        line = raw.strip()
        if line and len(_COLUMN_SPLIT.split(line)) >= 2:
            current.append(line)
            continue

        if len(current) >= 2:
            tables.append(_build_generic_table(current))
        current = []

    if len(current) >= 2:
        tables.append(_build_generic_table(current))

    return tables


def extract_tables(
    text: str, layout: LayoutTemplate = PURCHASE_ORDER_LAYOUT
) -> list[LineItemTable | GenericTable]:
    """
    Run both table strategies and concatenate their results.

    Returns:
        The line-item table (if any items were found) followed by every
        generic table.
    """
    tables: list[LineItemTable | GenericTable] = []

    line_items = extract_line_items(text, layout)
    if line_items:
        tables.append(
            LineItemTable(
                row_count=len(line_items) + 1,  # +1 for header row
                column_count=len(layout.headers),
                headers=list(layout.headers),
                cells=[
                    LineItemCell(
                        row_index=index + 1,
                        item=item,
                        confidence=LINE_ITEM_CONFIDENCE,
                    )
                    for index, item in enumerate(line_items)
                ],
                line_items=line_items,
            )
        )

    tables.extend(extract_generic_tables(text))
    return tables
