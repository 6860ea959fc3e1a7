"""
Table parser: a narrow two-level tokenizer for form download tables.

Grammar (case-insensitive, comments allowed between tokens):

    region := <tbody ...> (gap row)* gap </tbody>
    row    := <tr ...> (gap cell)* gap </tr>
    cell   := <td|th ...> inner </td|th>      followed by another cell or
                                               the end of the row
    gap    := whitespace and HTML comments only

Cell boundaries are matched non-greedily and then confirmed twice: the close
tag must be followed by the next cell (or the row end), and the captured inner
markup must not itself contain a cell tag. Anything that does not fit raises
ParseError instead of being mis-split.

Every piece of source text lands in a model field, so serializing an
unmodified TableBlock gives back the original region byte for byte.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from .exceptions import ParseError
from .logger import get_module_logger
from .schemas import Cell, Row, TableBlock

logger = get_module_logger("parser")

TBODY_PATTERN = re.compile(r'(<tbody\b[^>]*>)(.*?)(</tbody\s*>)', re.IGNORECASE | re.DOTALL)
ROW_PATTERN = re.compile(r'(<tr\b[^>]*>)(.*?)(</tr\s*>)', re.IGNORECASE | re.DOTALL)
CELL_PATTERN = re.compile(
    r'(<(t[dh])\b[^>]*>)(.*?)(</\2\s*>)'
    r'(?=(?:\s|<!--.*?-->)*(?:<t[dh]\b|\Z))',
    re.IGNORECASE | re.DOTALL
)

# A cell tag inside captured inner markup means the boundary was wrong
STRAY_CELL_TAG = re.compile(r'</?t[dh]\b', re.IGNORECASE)
COMMENT_PATTERN = re.compile(r'<!--.*?-->', re.DOTALL)


def extract_href(markup: str) -> Optional[str]:
    """
    Target of the first <a href> in a markup fragment, trimmed.

    Blank or whitespace-only targets count as no link.
    """
    if '<a' not in markup.lower():
        return None
    soup = BeautifulSoup(markup, 'html5lib')
    anchor = soup.find('a', href=True)
    if anchor is None:
        return None
    href = anchor['href'].strip()
    return href or None


def markup_text(markup: str) -> str:
    """Visible text of a fragment with all tags stripped, trimmed."""
    soup = BeautifulSoup(markup, 'html5lib')
    return soup.get_text().strip()


class TableParser:
    """Parses the first <tbody> of a document into rows and cells."""

    def __init__(self, min_cells: int = 2, strict_year: bool = True):
        """
        Args:
            min_cells: Rows with fewer cells are flagged short and left alone
            strict_year: Keep only the digits of the first cell's text as year
        """
        self.min_cells = min_cells
        self.strict_year = strict_year

    def parse(self, text: str, source: Optional[str] = None) -> TableBlock:
        """
        Tokenize the table region of a document.

        Raises:
            ParseError: no <tbody>, no rows, or content that breaks the grammar
        """
        region = TBODY_PATTERN.search(text)
        if region is None:
            raise ParseError("no <tbody> region found", source=source)

        body = region.group(2)
        row_tokens, trailing = self._tokenize(ROW_PATTERN, body, "row", source)
        if not row_tokens:
            raise ParseError("<tbody> contains no rows", source=source)

        rows = []
        for gap, match in row_tokens:
            rows.append(self._parse_row(gap, match, source))

        short = sum(1 for row in rows if row.short)
        if short:
            logger.debug(f"{source or 'document'}: {short} row(s) below {self.min_cells} cells skipped")

        return TableBlock(
            start=region.start(),
            end=region.end(),
            open_tag=region.group(1),
            rows=rows,
            trailing=trailing,
            close_tag=region.group(3),
        )

    def _parse_row(self, prefix: str, match: re.Match, source: Optional[str]) -> Row:
        cell_tokens, trailing = self._tokenize(CELL_PATTERN, match.group(2), "cell", source)

        cells = []
        for column, (gap, cell_match) in enumerate(cell_tokens):
            inner = cell_match.group(3)
            if STRAY_CELL_TAG.search(inner):
                raise ParseError(
                    f"unbalanced cell markup in column {column}",
                    source=source,
                    details={"inner": inner[:200]}
                )
            cells.append(Cell(
                column=column,
                prefix=gap,
                open_tag=cell_match.group(1),
                inner=inner,
                close_tag=cell_match.group(4),
                href=extract_href(inner),
            ))

        year = self._derive_year(cells[0].inner) if cells else ""
        return Row(
            prefix=prefix,
            open_tag=match.group(1),
            cells=cells,
            trailing=trailing,
            close_tag=match.group(3),
            year=year,
            short=len(cells) < self.min_cells,
        )

    def _derive_year(self, markup: str) -> str:
        text = markup_text(markup)
        if self.strict_year:
            return "".join(ch for ch in text if ch.isdigit())
        return text

    def _tokenize(self, pattern: re.Pattern, text: str, what: str,
                  source: Optional[str]) -> tuple[list[tuple[str, re.Match]], str]:
        """
        Split text into (gap, match) pairs plus the trailing gap.

        Gaps must be whitespace or comments; anything else is a ParseError.
        """
        tokens = []
        pos = 0
        while True:
            match = pattern.search(text, pos)
            if match is None:
                break
            gap = text[pos:match.start()]
            self._check_gap(gap, what, source)
            tokens.append((gap, match))
            pos = match.end()

        trailing = text[pos:]
        self._check_gap(trailing, what, source)
        return tokens, trailing

    @staticmethod
    def _check_gap(gap: str, what: str, source: Optional[str]) -> None:
        leftover = COMMENT_PATTERN.sub('', gap).strip()
        if leftover:
            raise ParseError(
                f"unexpected content between {what}s: {leftover[:60]!r}",
                source=source
            )


def parse_table(text: str, source: Optional[str] = None) -> TableBlock:
    """Convenience function to parse a document's table with default settings."""
    return TableParser().parse(text, source=source)
