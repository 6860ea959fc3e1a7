"""
Pydantic schemas shared by every stage of the link checker.

Data flow through one run:
  Parser      → TableBlock (rows of cells, keyed by year)
  Prober      → ProbeResult per URL (cached for the whole run)
  Repair      → RepairDecision per linked cell, ChangeEntry per mutation
  Parity      → ChangeEntry per blanked asymmetric link
  Pipeline    → PassReport per document/pair, folded into one RunSummary
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Language ---
# Language only changes the placeholder text and the file-name suffix,
# so it is data, not a separate code path.

class Language(str, Enum):
    """Languages a form table is published in."""
    EN = "en"
    FR = "fr"

    @property
    def suffix(self) -> str:
        """Single-letter file suffix: <slug>-table-e.htm / <slug>-table-f.htm."""
        return "e" if self is Language.EN else "f"

    @property
    def placeholder(self) -> str:
        """Inert markup substituted for an unusable link."""
        return PLACEHOLDERS[self]


PLACEHOLDERS = {
    Language.EN: '<span class="small text-muted">Not available</span>',
    Language.FR: '<span class="small text-muted">Pas disponible</span>',
}


# --- Table model ---
# Every string field holds the exact source text, so concatenating them in
# order reproduces the parsed region byte for byte.

class Cell(BaseModel):
    """One <td>/<th> at a fixed column index inside a row."""
    column: int
    prefix: str = ""          # Text between the previous boundary and the open tag
    open_tag: str
    inner: str
    close_tag: str
    href: Optional[str] = None  # First non-blank <a href>, trimmed
    mutated: bool = False

    @property
    def has_link(self) -> bool:
        return self.href is not None

    def replace_markup(self, inner: str, href: Optional[str]) -> None:
        """Swap the inner markup and the link target together."""
        self.inner = inner
        self.href = href
        self.mutated = True

    def blank(self, language: Language) -> Optional[str]:
        """Replace the inner markup with the placeholder; returns the removed href."""
        removed = self.href
        self.replace_markup(language.placeholder, None)
        return removed


class Row(BaseModel):
    """One <tr>, keyed by the text of its first cell."""
    prefix: str = ""
    open_tag: str
    cells: list[Cell] = Field(default_factory=list)
    trailing: str = ""        # Text after the last cell, before </tr>
    close_tag: str
    year: str = ""
    short: bool = False       # Fewer cells than the table expects; never repaired

    def cell(self, column: int) -> Cell:
        return self.cells[column]


class TableBlock(BaseModel):
    """The first <tbody> of a document and where it sits in the text."""
    start: int
    end: int
    open_tag: str
    rows: list[Row] = Field(default_factory=list)
    trailing: str = ""
    close_tag: str

    @property
    def data_rows(self) -> list[Row]:
        return [row for row in self.rows if not row.short]

    @property
    def mutated(self) -> bool:
        return any(cell.mutated for row in self.rows for cell in row.cells)

    def linked_cells(self) -> list[tuple[Row, Cell]]:
        """(row, cell) pairs for every cell carrying a link, in document order."""
        return [
            (row, cell)
            for row in self.data_rows
            for cell in row.cells
            if cell.has_link
        ]


# --- Probing ---

class ProbeMethod(str, Enum):
    HEAD = "HEAD"
    GET = "GET"


class ProbeResult(BaseModel):
    """Outcome of checking one URL. Immutable so cached copies can be shared."""
    model_config = ConfigDict(frozen=True)

    url: str
    is_live: bool
    status_code: Optional[int] = None
    method: Optional[ProbeMethod] = None   # None when no request was sent
    error: Optional[str] = None

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


# --- Repair decisions ---

class RepairAction(str, Enum):
    KEEP = "keep"
    REPLACE = "replace"
    BLANK = "blank"


class RepairDecision(BaseModel):
    """What the repair policy wants done with one linked cell."""
    action: RepairAction
    href: str
    alt_href: Optional[str] = None
    probe: ProbeResult
    alt_probe: Optional[ProbeResult] = None
    reason: str = ""


# --- Reporting ---

class ChangeEntry(BaseModel):
    """One cell mutation, written to the per-run change log."""
    form_id: str
    year: str
    column: int
    language: Language
    action: RepairAction
    removed_href: Optional[str] = None
    new_href: Optional[str] = None
    stage: str = "validation"   # "validation" or "parity"


class PassReport(BaseModel):
    """
    Accumulator returned by one repair or parity pass.

    Passed explicitly through the pass instead of module-level counters, so
    each document's tallies stay independent.
    """
    form_id: str
    language: Optional[Language] = None
    cells_checked: int = 0
    kept: int = 0
    replaced: int = 0
    blanked: int = 0
    changes: list[ChangeEntry] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    def record(self, entry: ChangeEntry) -> None:
        self.changes.append(entry)
        if entry.action is RepairAction.REPLACE:
            self.replaced += 1
        elif entry.action is RepairAction.BLANK:
            self.blanked += 1


class RunSummary(BaseModel):
    """Totals for one whole run, serialized by the command-line scripts."""
    documents_processed: int = 0
    documents_written: int = 0
    cells_checked: int = 0
    cells_changed: int = 0
    warnings: list[str] = Field(default_factory=list)
    fatal_errors: list[str] = Field(default_factory=list)
    changes: list[ChangeEntry] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.fatal_errors else 0

    def absorb(self, report: PassReport) -> None:
        """Fold one pass report into the run totals."""
        self.cells_checked += report.cells_checked
        self.cells_changed += len(report.changes)
        self.changes.extend(report.changes)
        self.warnings.extend(report.warnings)
