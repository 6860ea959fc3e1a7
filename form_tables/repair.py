"""
Link repair policy: the single-document validation pass.

For every linked cell the policy probes the href and decides:
  KEEP     the link answers (or is dead in a way the trigger ignores)
  REPLACE  the link is dead but the successor form family has the file;
           only the href value changes, link text and markup stay
  BLANK    dead with no live alternate; the cell becomes the placeholder

Cells without a link are never probed and never touched.
"""

import re
from typing import Callable, Optional
from urllib.parse import urlsplit, urlunsplit

from .config import RepairTrigger, Settings
from .logger import get_module_logger
from .parser import extract_href
from .prober import URLProber
from .schemas import (
    Cell,
    ChangeEntry,
    Language,
    PassReport,
    ProbeResult,
    RepairAction,
    RepairDecision,
    TableBlock,
)

logger = get_module_logger("repair")

# The href attribute of the first anchor: quoted (group 3) or bare (group 4).
# The name must follow whitespace so data-href and the like never match.
ANCHOR_HREF_PATTERN = re.compile(
    r'''(<a\b[^>]*?\s)href\s*=\s*(?:(["'])(.*?)\2|([^\s"'>]+))''',
    re.IGNORECASE | re.DOTALL
)


def alternate_url(url: str, substitutions: dict[str, str]) -> Optional[str]:
    """
    Successor-family URL for a legacy file name, or None.

    Only the file-name component is rewritten:
    https://ex/pdf/5000-s2-23e.pdf -> https://ex/pdf/5100-s2-23e.pdf
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    head, sep, name = parts.path.rpartition('/')
    for legacy, successor in substitutions.items():
        if name.startswith(legacy):
            path = f"{head}{sep}{successor}{name[len(legacy):]}"
            return urlunsplit(parts._replace(path=path))
    return None


def rewrite_href(markup: str, transform: Callable[[str], Optional[str]]) -> Optional[str]:
    """
    Apply transform to the first anchor's href value inside markup.

    Everything except the trimmed value itself (quotes, padding, other
    attributes, link text) is kept. Returns None when there is no anchor
    href or the transform declines.
    """
    match = ANCHOR_HREF_PATTERN.search(markup)
    if match is None:
        return None

    group = 3 if match.group(3) is not None else 4
    raw = match.group(group)
    stripped = raw.strip()
    replacement = transform(stripped)
    if replacement is None:
        return None

    lead = raw[:len(raw) - len(raw.lstrip())]
    tail = raw[len(raw.rstrip()):]
    start, end = match.span(group)
    return markup[:start] + lead + replacement + tail + markup[end:]


class LinkRepairPolicy:
    """Decides and applies keep/replace/blank for the links of one document."""

    def __init__(self, prober: URLProber, settings: Optional[Settings] = None):
        self.prober = prober
        self.settings = settings or prober.settings

    def triggers(self, probe: ProbeResult) -> bool:
        """Whether a probe result calls for repair under the configured trigger."""
        if probe.is_live:
            return False
        if self.settings.repair_trigger is RepairTrigger.ANY_DEAD:
            return True
        return probe.is_not_found

    def decide(self, cell: Cell, language: Language) -> RepairDecision:
        """Probe a linked cell (and its alternate if needed) and pick an action."""
        href = cell.href or ""
        probe = self.prober.probe(href)

        if probe.is_live:
            return RepairDecision(action=RepairAction.KEEP, href=href, probe=probe, reason="live")

        if not self.triggers(probe):
            return RepairDecision(
                action=RepairAction.KEEP,
                href=href,
                probe=probe,
                reason=f"unverified: {probe.error or 'not live'}"
            )

        alt = alternate_url(href, self.settings.substitutions)
        if alt and alt != href:
            alt_probe = self.prober.probe(alt)
            if alt_probe.is_live:
                return RepairDecision(
                    action=RepairAction.REPLACE,
                    href=href,
                    alt_href=alt,
                    probe=probe,
                    alt_probe=alt_probe,
                    reason="alternate is live"
                )
            return RepairDecision(
                action=RepairAction.BLANK,
                href=href,
                alt_href=alt,
                probe=probe,
                alt_probe=alt_probe,
                reason=f"dead ({probe.error}), alternate dead ({alt_probe.error})"
            )

        return RepairDecision(
            action=RepairAction.BLANK,
            href=href,
            probe=probe,
            reason=f"dead ({probe.error}), no alternate"
        )

    def apply(self, table: TableBlock, language: Language, form_id: str) -> PassReport:
        """
        Run the validation pass over one document's table, mutating it in place.

        Returns:
            PassReport with counts, change entries and warnings for this document
        """
        report = PassReport(form_id=form_id, language=language)
        linked = table.linked_cells()

        if self.settings.max_workers > 1:
            # Warm the cache in parallel; decisions below stay sequential
            self.prober.probe_many([cell.href for _, cell in linked])

        for row, cell in linked:
            report.cells_checked += 1
            decision = self.decide(cell, language)

            if decision.action is RepairAction.KEEP:
                report.kept += 1
                if decision.reason != "live":
                    message = (f"{form_id} [{language.value}] year {row.year or '?'} "
                               f"col {cell.column}: kept {decision.href} ({decision.reason})")
                    report.warnings.append(message)
                    logger.warning(message)
                continue

            if decision.action is RepairAction.REPLACE:
                subs = self.settings.substitutions
                new_inner = rewrite_href(cell.inner, lambda value: alternate_url(value, subs))
                if new_inner is not None:
                    cell.replace_markup(new_inner, extract_href(new_inner))
                    report.record(ChangeEntry(
                        form_id=form_id,
                        year=row.year,
                        column=cell.column,
                        language=language,
                        action=RepairAction.REPLACE,
                        removed_href=decision.href,
                        new_href=cell.href,
                    ))
                    logger.info(f"{form_id} [{language.value}] year {row.year}: "
                                f"{decision.href} -> {cell.href}")
                    continue
                reason = f"could not rewrite href to {decision.alt_href}"
                message = (f"{form_id} [{language.value}] year {row.year or '?'} "
                           f"col {cell.column}: {reason}, blanking instead")
                report.warnings.append(message)
                logger.warning(message)
            else:
                reason = decision.reason

            removed = cell.blank(language)
            report.record(ChangeEntry(
                form_id=form_id,
                year=row.year,
                column=cell.column,
                language=language,
                action=RepairAction.BLANK,
                removed_href=removed,
            ))
            logger.info(f"{form_id} [{language.value}] year {row.year}: blanked {removed} "
                        f"({reason})")

        logger.info(f"{form_id} [{language.value}]: {report.cells_checked} checked, "
                    f"{report.replaced} replaced, {report.blanked} blanked")
        return report
