#!/usr/bin/env python3
"""
Command-line script to run the link validation pass.

Probes every link in each form's English and French table pages, substitutes
the successor form family where the legacy file is gone, and blanks links
that are dead for good. Pages are backed up before being rewritten.

Usage:
    python run_validator.py -m forms.txt -r results/
    python run_validator.py -r results/ t2-s1 t2-s2 --language en
    python run_validator.py -m forms.txt -r results/ --dry-run -o report.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Load .env file automatically (FORM_TABLES_* settings)
from dotenv import load_dotenv
load_dotenv()

from form_tables.config import RepairTrigger, Settings
from form_tables.exceptions import ConfigError, ManifestError
from form_tables.logger import setup_logger
from form_tables.manifest import load_manifest
from form_tables.pipeline import FormTablePipeline
from form_tables.schemas import Language


def collect_form_ids(args) -> list[str]:
    """Form ids from the manifest (if given) followed by any on the command line."""
    form_ids = load_manifest(args.manifest) if args.manifest else []
    for form_id in args.forms:
        if form_id not in form_ids:
            form_ids.append(form_id)
    return form_ids


def main():
    parser = argparse.ArgumentParser(
        description="Validate and repair the links in form table pages"
    )
    parser.add_argument("forms", nargs="*", help="Form ids to process")
    parser.add_argument("--manifest", "-m", help="File with one form id per line")
    parser.add_argument("--results-dir", "-r", default="results",
                        help="Directory holding <form>-table-e.htm / -f.htm")
    parser.add_argument("--language", "-l", choices=[lang.value for lang in Language],
                        help="Only validate one language")
    parser.add_argument("--trigger", choices=[t.value for t in RepairTrigger],
                        help="Repair only 404s (not_found) or any dead link (any_dead)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument("--workers", type=int, help="Parallel probes (default 1)")
    parser.add_argument("--base-url", help="Base URL for relative links")
    parser.add_argument("--no-backup", action="store_true", help="Do not back up pages before writing")
    parser.add_argument("--dry-run", "-n", action="store_true", help="Decide and report, write nothing")
    parser.add_argument("--output", "-o", help="Write the run summary as JSON to this file")
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    try:
        settings = Settings.from_env().with_overrides(
            repair_trigger=args.trigger,
            timeout=args.timeout,
            max_workers=args.workers,
            base_url=args.base_url,
            backup=False if args.no_backup else None,
        )
        form_ids = collect_form_ids(args)
    except (ConfigError, ManifestError) as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 2

    if not form_ids:
        print("✗ No form ids given (use --manifest or list them)", file=sys.stderr)
        return 2

    languages = [Language(args.language)] if args.language else [Language.EN, Language.FR]
    pipeline = FormTablePipeline(args.results_dir, settings=settings, dry_run=args.dry_run)
    summary = pipeline.validate(form_ids, languages=languages)

    print(f"\n✓ {summary.documents_processed} page(s), {summary.cells_checked} link(s) checked, "
          f"{summary.cells_changed} changed, {summary.documents_written} written", file=sys.stderr)
    for entry in summary.changes:
        new = f" -> {entry.new_href}" if entry.new_href else ""
        print(f"  {entry.form_id} [{entry.language.value}] {entry.year} col {entry.column}: "
              f"{entry.action.value} {entry.removed_href}{new}", file=sys.stderr)
    for failure in summary.fatal_errors:
        print(f"  ✗ {failure}", file=sys.stderr)

    if args.output:
        Path(args.output).write_text(
            json.dumps(summary.model_dump(mode="json"), indent=2, ensure_ascii=False),
            encoding="utf-8"
        )
        print(f"\nSummary saved to: {args.output}", file=sys.stderr)

    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
