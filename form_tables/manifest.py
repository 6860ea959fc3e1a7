"""
Manifest of form identifiers to process, one per line.

Blank lines and '#' comments are ignored; identifiers must be letters,
digits and dashes. Bad entries are skipped with a warning, duplicates
keep their first position.
"""

import re
from pathlib import Path
from typing import Union

from .exceptions import ManifestError
from .logger import get_module_logger

logger = get_module_logger("manifest")

SLUG_PATTERN = re.compile(r'^[A-Za-z0-9-]+$')


def parse_manifest(text: str, source: str = "manifest") -> list[str]:
    slugs = []
    seen = set()

    for lineno, line in enumerate(text.splitlines(), start=1):
        entry = line.strip()
        if not entry or entry.startswith('#'):
            continue
        if not SLUG_PATTERN.match(entry):
            logger.warning(f"{source}:{lineno}: skipping invalid form id {entry!r}")
            continue
        if entry in seen:
            logger.debug(f"{source}:{lineno}: duplicate form id {entry!r} ignored")
            continue
        seen.add(entry)
        slugs.append(entry)

    logger.info(f"{source}: {len(slugs)} form id(s)")
    return slugs


def load_manifest(path: Union[str, Path]) -> list[str]:
    """
    Read a manifest file.

    Raises:
        ManifestError: the file cannot be read
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"cannot read manifest {path}: {e}", details={"path": str(path)})
    return parse_manifest(text, source=path.name)
