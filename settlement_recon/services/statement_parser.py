"""Bank statement text parser.

Turns raw CSV statement text into untyped candidate rows. Conversion to
Decimal/date happens in the ingestion service.
"""

import csv
import io
from dataclasses import dataclass

REQUIRED_COLUMNS = ("Date", "Amount", "Description")
REFERENCE_COLUMN = "Reference"


class ParseError(Exception):
    """Raised when statement text is not well-formed tabular data."""

    pass


@dataclass(frozen=True)
class RawStatementRow:
    """One statement row, all fields trimmed text."""

    line_number: int
    date: str
    amount: str
    description: str
    reference: str


def _is_blank(cells: list[str]) -> bool:
    # A line of bare delimiters is an empty record, not a blank line
    return not cells or (len(cells) == 1 and not cells[0].strip())


def parse_statement(raw_text: str) -> list[RawStatementRow]:
    """Parse statement text with a `Date,Amount,Description,Reference` header.

    Header names are case-sensitive. The Reference column may be omitted, in
    which case every row gets an empty reference.

    Raises:
        ParseError: missing header columns, or a row whose cell count differs
            from the header's.
    """
    reader = csv.reader(io.StringIO(raw_text.lstrip("\ufeff")))
    header: list[str] | None = None
    rows: list[RawStatementRow] = []

    try:
        for cells in reader:
            if _is_blank(cells):
                continue
            cells = [cell.strip() for cell in cells]

            if header is None:
                missing = [name for name in REQUIRED_COLUMNS if name not in cells]
                if missing:
                    raise ParseError(f"Statement header is missing columns: {', '.join(missing)}")
                header = cells
                continue

            if len(cells) != len(header):
                raise ParseError(
                    f"Line {reader.line_num}: expected {len(header)} columns, found {len(cells)}"
                )

            record = dict(zip(header, cells, strict=True))
            rows.append(
                RawStatementRow(
                    line_number=reader.line_num,
                    date=record["Date"],
                    amount=record["Amount"],
                    description=record["Description"],
                    reference=record.get(REFERENCE_COLUMN, ""),
                )
            )
    except csv.Error as exc:
        raise ParseError(f"Line {reader.line_num}: {exc}") from exc

    return rows
