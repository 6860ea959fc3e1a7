"""
Main orchestrator for the form-table link checker.

Two passes share one parser, one prober (and so one probe cache) per run:
  validate   per document: Parser → Prober → LinkRepairPolicy → Serializer
  reconcile  per EN/FR pair: Parser → ParityEnforcer → Serializer

A parse or I/O failure stops only the document or pair it happened in; the
run carries on and the failure is counted in the RunSummary, whose exit_code
the command-line scripts return.
"""

from pathlib import Path
from typing import Iterable, Optional, Union

from .config import Settings
from .documents import SourceDocument, document_path, read_document, write_document
from .exceptions import DocumentIOError, ParseError
from .logger import get_module_logger, setup_logger
from .parity import ParityEnforcer
from .parser import TableParser
from .prober import URLProber
from .repair import LinkRepairPolicy
from .schemas import Language, PassReport, RunSummary, TableBlock
from .serializer import splice

logger = get_module_logger("pipeline")


class FormTablePipeline:
    """Runs the validation and parity passes over the pages of many forms."""

    def __init__(
        self,
        results_dir: Union[str, Path],
        settings: Optional[Settings] = None,
        prober: Optional[URLProber] = None,
        session=None,
        dry_run: bool = False,
        log_level: Optional[int] = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.results_dir = Path(results_dir)
        self.settings = settings or Settings()
        self.prober = prober or URLProber(self.settings, session=session)
        self.parser = TableParser(min_cells=self.settings.min_cells,
                                  strict_year=self.settings.strict_year)
        self.policy = LinkRepairPolicy(self.prober, self.settings)
        self.enforcer = ParityEnforcer()
        self.dry_run = dry_run

        logger.info(f"Pipeline ready: {self.results_dir} "
                    f"(trigger={self.settings.repair_trigger.value}, dry_run={dry_run})")

    # --- single documents ---

    def load(self, form_id: str, language: Language) -> tuple[SourceDocument, TableBlock]:
        """Read and parse one page. Raises DocumentIOError or ParseError."""
        document = read_document(document_path(self.results_dir, form_id, language))
        table = self.parser.parse(document.text, source=document.path.name)
        return document, table

    def save(self, document: SourceDocument, table: TableBlock) -> bool:
        """Splice the table back into its document and write it (unless dry run)."""
        if self.dry_run:
            logger.info(f"Dry run: not writing {document.path.name}")
            return False
        write_document(document, splice(document.text, table), backup=self.settings.backup)
        return True

    def validate_document(self, form_id: str, language: Language,
                          summary: Optional[RunSummary] = None) -> PassReport:
        """Probe and repair the links of one page, writing it back if anything changed."""
        document, table = self.load(form_id, language)
        report = self.policy.apply(table, language, form_id)

        if summary is not None:
            summary.documents_processed += 1
        if report.changed and self.save(document, table) and summary is not None:
            summary.documents_written += 1
        return report

    # --- pairs ---

    def reconcile_pair(self, form_id: str, summary: Optional[RunSummary] = None) -> PassReport:
        """
        Enforce link parity between a form's English and French pages.

        Both pages are written when any cell changed; nothing is written
        otherwise, so re-running on repaired pages is a no-op.
        """
        en_document, en_table = self.load(form_id, Language.EN)
        fr_document, fr_table = self.load(form_id, Language.FR)
        report = self.enforcer.reconcile(en_table, fr_table, form_id)

        if summary is not None:
            summary.documents_processed += 2
        if report.changed:
            for document, table in ((en_document, en_table), (fr_document, fr_table)):
                if self.save(document, table) and summary is not None:
                    summary.documents_written += 1
        return report

    # --- whole runs ---

    def validate(self, form_ids: Iterable[str],
                 languages: Iterable[Language] = (Language.EN, Language.FR)) -> RunSummary:
        """Validation pass over every (form, language) page."""
        summary = RunSummary()
        languages = list(languages)

        for form_id in form_ids:
            for language in languages:
                try:
                    report = self.validate_document(form_id, language, summary)
                except (ParseError, DocumentIOError) as e:
                    self._fatal(summary, f"{form_id} [{language.value}]: {e}")
                    continue
                summary.absorb(report)

        self._log_summary("Validation", summary)
        return summary

    def reconcile(self, form_ids: Iterable[str]) -> RunSummary:
        """Parity pass over every EN/FR pair."""
        summary = RunSummary()

        for form_id in form_ids:
            try:
                report = self.reconcile_pair(form_id, summary)
            except (ParseError, DocumentIOError) as e:
                self._fatal(summary, f"{form_id}: {e}")
                continue
            summary.absorb(report)

        self._log_summary("Parity", summary)
        return summary

    @staticmethod
    def _fatal(summary: RunSummary, message: str) -> None:
        summary.fatal_errors.append(message)
        logger.warning(f"Skipped {message}")

    @staticmethod
    def _log_summary(label: str, summary: RunSummary) -> None:
        logger.info(
            f"{label} complete: {summary.documents_processed} document(s), "
            f"{summary.cells_checked} cell(s) checked, {summary.cells_changed} changed, "
            f"{summary.documents_written} written, {len(summary.warnings)} warning(s), "
            f"{len(summary.fatal_errors)} failure(s)"
        )
