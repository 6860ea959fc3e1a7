"""
Document I/O for the per-form table pages.

Pages are read as bytes and decoded with the charset their <meta> tag
declares, then written back in that same charset, so every byte outside the
repaired cells survives. The previous on-disk version is copied to a
timestamped backup before any overwrite.
"""

import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from .exceptions import DocumentIOError
from .logger import get_module_logger
from .schemas import Language

logger = get_module_logger("documents")

# WHATWG encoding spec: browsers remap these labels, so we decode the same way
# https://encoding.spec.whatwg.org/#names-and-labels
WHATWG_CHARSET_MAP = {
    'iso-8859-1': 'windows-1252',
    'iso8859-1': 'windows-1252',
    'iso88591': 'windows-1252',
    'latin-1': 'windows-1252',
    'latin1': 'windows-1252',
    'us-ascii': 'windows-1252',
    'ascii': 'windows-1252',
    'iso-8859-9': 'windows-1254',
    'iso-8859-11': 'windows-874',
}

META_CHARSET = re.compile(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', re.IGNORECASE)
META_CONTENT_CHARSET = re.compile(r'<meta[^>]+content=["\'][^"\']*charset=([^\s"\';>]+)', re.IGNORECASE)

BACKUP_STAMP = "%Y%m%d-%H%M%S"


class SourceDocument(BaseModel):
    """A decoded page plus what is needed to write it back faithfully."""
    path: Path
    text: str
    charset: str = "utf-8"


def document_path(results_dir: Union[str, Path], slug: str, language: Language) -> Path:
    """<results_dir>/<slug>-table-e.htm or -f.htm."""
    return Path(results_dir) / f"{slug}-table-{language.suffix}.htm"


def detect_charset(raw_bytes: bytes) -> str:
    """
    Charset declared in the first 2 KB of an HTML page, or 'utf-8'.

    Checks <meta charset=...> first, then the legacy http-equiv form.
    """
    head = raw_bytes[:2048].decode('ascii', errors='ignore')

    charset = None
    m = META_CHARSET.search(head)
    if m:
        charset = m.group(1).strip().lower()
    if not charset:
        m = META_CONTENT_CHARSET.search(head)
        if m:
            charset = m.group(1).strip().lower()
    if not charset:
        return 'utf-8'

    return WHATWG_CHARSET_MAP.get(charset, charset)


def read_document(path: Union[str, Path]) -> SourceDocument:
    """
    Read and decode one page.

    Decoding is strict: a page that does not decode cleanly would not write
    back byte-identical, so it is refused.

    Raises:
        DocumentIOError: missing or unreadable file, unknown or wrong charset
    """
    path = Path(path)
    try:
        raw_bytes = path.read_bytes()
    except FileNotFoundError:
        raise DocumentIOError(f"file not found: {path}", path=str(path))
    except OSError as e:
        raise DocumentIOError(f"cannot read {path}: {e}", path=str(path))

    charset = detect_charset(raw_bytes)
    try:
        text = raw_bytes.decode(charset)
    except LookupError:
        raise DocumentIOError(f"unknown charset {charset!r} in {path}", path=str(path))
    except UnicodeDecodeError as e:
        raise DocumentIOError(
            f"{path} does not decode as {charset}: {e.reason} at byte {e.start}",
            path=str(path)
        )

    logger.debug(f"Read {path} ({charset}, {len(text)} chars)")
    return SourceDocument(path=path, text=text, charset=charset)


def backup_path(path: Union[str, Path], now: Optional[datetime] = None) -> Path:
    """
    First free <path>.bak-<YYYYmmdd-HHMMSS>[-N] name.

    The timestamp sorts chronologically; -N separates backups taken within
    the same second.
    """
    path = Path(path)
    stamp = (now or datetime.now()).strftime(BACKUP_STAMP)
    candidate = path.with_name(f"{path.name}.bak-{stamp}")
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}.bak-{stamp}-{counter}")
        counter += 1
    return candidate


def write_document(
    document: SourceDocument,
    text: str,
    backup: bool = True,
    now: Optional[datetime] = None
) -> Optional[Path]:
    """
    Write new text over a document in its original charset.

    Args:
        document: The document as read (path and charset are reused)
        text: Full new document text
        backup: Copy the current on-disk file aside first
        now: Timestamp for the backup name (defaults to the current time)

    Returns:
        Path of the backup taken, or None

    Raises:
        DocumentIOError: text not encodable in the charset, or write failure
    """
    try:
        payload = text.encode(document.charset)
    except UnicodeEncodeError as e:
        raise DocumentIOError(
            f"new content for {document.path} is not encodable as {document.charset}: {e.reason}",
            path=str(document.path)
        )

    saved = None
    try:
        if backup and document.path.exists():
            saved = backup_path(document.path, now)
            shutil.copy2(document.path, saved)
            logger.debug(f"Backed up {document.path} -> {saved.name}")
        document.path.write_bytes(payload)
    except OSError as e:
        raise DocumentIOError(f"cannot write {document.path}: {e}", path=str(document.path))

    logger.info(f"Wrote {document.path}")
    return saved
