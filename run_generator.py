#!/usr/bin/env python3
"""
Command-line script to generate per-form table pages from a template.

Usage:
    python run_generator.py template-e.htm -l en -m forms.txt -r results/
    python run_generator.py template-f.htm -l fr -r results/ t2-s1 t2-s2
"""

import argparse
import logging
import sys

from dotenv import load_dotenv
load_dotenv()

from form_tables.config import Settings
from form_tables.exceptions import ConfigError, DocumentIOError, ManifestError
from form_tables.generator import generate
from form_tables.logger import setup_logger
from form_tables.manifest import load_manifest
from form_tables.schemas import Language


def main():
    parser = argparse.ArgumentParser(description="Stamp form ids into a table page template")
    parser.add_argument("template", help="Template page containing the form token")
    parser.add_argument("forms", nargs="*", help="Form ids to generate")
    parser.add_argument("--language", "-l", required=True, choices=[lang.value for lang in Language])
    parser.add_argument("--manifest", "-m", help="File with one form id per line")
    parser.add_argument("--results-dir", "-r", default="results", help="Output directory")
    parser.add_argument("--token", help="Placeholder token in the template (default {{FORM}})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = Settings.from_env().with_overrides(template_token=args.token)
        form_ids = load_manifest(args.manifest) if args.manifest else []
        form_ids += [f for f in args.forms if f not in form_ids]
        if not form_ids:
            print("✗ No form ids given (use --manifest or list them)", file=sys.stderr)
            return 2
        written = generate(args.template, form_ids, args.results_dir, Language(args.language),
                           token=settings.template_token, backup=settings.backup)
    except (ConfigError, ManifestError, DocumentIOError) as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1

    print(f"✓ {len(written)} page(s) written to {args.results_dir}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
