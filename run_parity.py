#!/usr/bin/env python3
"""
Command-line script to run the bilingual parity pass (no network).

For each form, joins the English and French table rows on year and blanks
any link that exists in one language only. A pair is written back only when
something changed.

Usage:
    python run_parity.py -m forms.txt -r results/
    python run_parity.py -r results/ t2-s1 --dry-run
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from form_tables.config import Settings
from form_tables.exceptions import ConfigError, ManifestError
from form_tables.logger import setup_logger
from form_tables.manifest import load_manifest
from form_tables.pipeline import FormTablePipeline


def main():
    parser = argparse.ArgumentParser(
        description="Make English and French form tables agree on which cells have links"
    )
    parser.add_argument("forms", nargs="*", help="Form ids to process")
    parser.add_argument("--manifest", "-m", help="File with one form id per line")
    parser.add_argument("--results-dir", "-r", default="results",
                        help="Directory holding <form>-table-e.htm / -f.htm")
    parser.add_argument("--no-backup", action="store_true", help="Do not back up pages before writing")
    parser.add_argument("--dry-run", "-n", action="store_true", help="Report only, write nothing")
    parser.add_argument("--output", "-o", help="Write the change log as JSON to this file")
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    try:
        settings = Settings.from_env().with_overrides(backup=False if args.no_backup else None)
        form_ids = load_manifest(args.manifest) if args.manifest else []
    except (ConfigError, ManifestError) as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 2

    form_ids += [f for f in args.forms if f not in form_ids]
    if not form_ids:
        print("✗ No form ids given (use --manifest or list them)", file=sys.stderr)
        return 2

    pipeline = FormTablePipeline(args.results_dir, settings=settings, dry_run=args.dry_run)
    summary = pipeline.reconcile(form_ids)

    print(f"\n✓ {summary.documents_processed} page(s), {summary.cells_changed} cell(s) blanked, "
          f"{len(summary.warnings)} warning(s)", file=sys.stderr)
    for entry in summary.changes:
        print(f"  {entry.form_id} {entry.year} col {entry.column}: blanked "
              f"[{entry.language.value}] {entry.removed_href}", file=sys.stderr)
    for failure in summary.fatal_errors:
        print(f"  ✗ {failure}", file=sys.stderr)

    if args.output:
        Path(args.output).write_text(
            json.dumps(summary.model_dump(mode="json"), indent=2, ensure_ascii=False),
            encoding="utf-8"
        )
        print(f"\nChange log saved to: {args.output}", file=sys.stderr)

    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
