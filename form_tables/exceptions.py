"""
Custom exceptions for the form-table link checker.

Error philosophy:
  - ParseError       → FAIL for one document: the table region is missing or
                       malformed; the run skips that document or pair.
  - DocumentIOError  → FAIL for one document: missing, undecodable or
                       unwritable file; the run skips that document or pair.
  - ProbeError       → RECOVERED: raised by a single probe attempt and turned
                       into a not-live ProbeResult inside the prober.
  - ManifestError    → FAIL HARD: without a manifest there is nothing to run.
  - ConfigError      → FAIL HARD: bad environment configuration.

Parity problems (a year present on one side only, duplicate years) are not
exceptions at all; they are recorded as warnings on the pass report.
"""

from typing import Optional


class FormTablesError(Exception):
    """Base exception for all form-table errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Per-document failures: the run continues with the next form ---

class ParseError(FormTablesError):
    """
    Raised when the table region of a document cannot be tokenized.

    Fatal for that single document only; the pipeline logs a warning and
    moves on to the remaining forms.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.source = source  # path or label of the offending document

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class DocumentIOError(FormTablesError):
    """Raised when a document cannot be read, decoded or written."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.path = path


# --- Recovered locally ---

class ProbeError(FormTablesError):
    """
    Raised by a single probe attempt (timeout, transport failure, bad URL).

    Never escapes the prober: it is converted into ProbeResult(is_live=False).
    """

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


# --- Run-level failures ---

class ManifestError(FormTablesError):
    """Raised when the manifest file cannot be read."""
    pass


class ConfigError(FormTablesError):
    """Raised when an environment setting has an invalid value."""
    pass
