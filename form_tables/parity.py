"""
Bilingual parity enforcer: the paired-document pass (no network).

The English and French tables of a form must agree on which cells carry a
link. Rows are joined on year; for each shared year every column after the
year column is compared, and when exactly one side has a link that side is
blanked to its language's placeholder.

Each year is handled independently, so the result does not depend on row
order, and a second run over the output finds nothing to change.
"""

from collections import Counter
from typing import Optional

from .logger import get_module_logger
from .schemas import ChangeEntry, Language, PassReport, RepairAction, Row, TableBlock

logger = get_module_logger("parity")


def index_by_year(table: TableBlock, language: Language, form_id: str,
                  report: PassReport) -> dict[str, Row]:
    """
    Year -> row for the data rows of one table.

    Blank and duplicate years are warned about and left out of the index,
    since year is the join key.
    """
    rows = table.data_rows
    counts = Counter(row.year for row in rows)
    index = {}
    duplicates_warned = set()

    for row in rows:
        if not row.year:
            _warn(report, f"{form_id} [{language.value}]: row without a year excluded from parity")
            continue
        if counts[row.year] > 1:
            if row.year not in duplicates_warned:
                duplicates_warned.add(row.year)
                _warn(report, f"{form_id} [{language.value}]: duplicate year {row.year} "
                              f"excluded from parity")
            continue
        index[row.year] = row

    return index


def _warn(report: PassReport, message: str) -> None:
    report.warnings.append(message)
    logger.warning(message)


class ParityEnforcer:
    """Normalizes asymmetric link presence between paired EN/FR tables."""

    def reconcile(
        self,
        en_table: TableBlock,
        fr_table: TableBlock,
        form_id: str,
        report: Optional[PassReport] = None
    ) -> PassReport:
        """
        Compare the two tables year by year and blank one-sided links.

        Both tables are mutated in place; the returned report carries the
        change log and warnings. report.changed tells the caller whether the
        pair needs to be written back.
        """
        if report is None:
            report = PassReport(form_id=form_id)
        en_index = index_by_year(en_table, Language.EN, form_id, report)
        fr_index = index_by_year(fr_table, Language.FR, form_id, report)

        for year, en_row in en_index.items():
            fr_row = fr_index.get(year)
            if fr_row is None:
                _warn(report, f"{form_id}: year {year} missing from French table, skipped")
                continue
            self._reconcile_rows(en_row, fr_row, form_id, report)

        for year in fr_index:
            if year not in en_index:
                _warn(report, f"{form_id}: year {year} missing from English table, skipped")

        if report.changed:
            logger.info(f"{form_id}: parity blanked {len(report.changes)} cell(s)")
        else:
            logger.info(f"{form_id}: tables already in parity")
        return report

    def _reconcile_rows(self, en_row: Row, fr_row: Row, form_id: str, report: PassReport) -> None:
        width = min(len(en_row.cells), len(fr_row.cells))

        # Column 0 is the year itself
        for column in range(1, width):
            en_cell = en_row.cells[column]
            fr_cell = fr_row.cells[column]
            report.cells_checked += 1

            if en_cell.has_link == fr_cell.has_link:
                continue

            language, cell = (Language.EN, en_cell) if en_cell.has_link else (Language.FR, fr_cell)
            removed = cell.blank(language)
            report.record(ChangeEntry(
                form_id=form_id,
                year=en_row.year,
                column=column,
                language=language,
                action=RepairAction.BLANK,
                removed_href=removed,
                stage="parity",
            ))
            logger.info(f"{form_id} year {en_row.year} col {column}: blanked "
                        f"{language.value} link {removed} (no counterpart)")


def reconcile(en_table: TableBlock, fr_table: TableBlock, form_id: str) -> PassReport:
    """Convenience function: run one parity pass over a pair of tables."""
    return ParityEnforcer().reconcile(en_table, fr_table, form_id)
