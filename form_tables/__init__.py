"""
Form Tables

Validates and repairs the download links in the English/French reference
tables of tax-form pages.
- Parser:     two-level tokenizer for the table's rows and cells
- Prober:     cached HEAD→GET liveness checks
- Repair:     keep / substitute successor form / blank dead links
- Parity:     blank links that exist in only one language
- Serializer: splice the table back, leaving every other byte untouched

Public API surface:
  Pipeline         : FormTablePipeline, Settings
  Stages           : TableParser, URLProber, ProbeCache, LinkRepairPolicy, ParityEnforcer
  Serialization    : serialize, splice
  Data models      : Language, Cell, Row, TableBlock, ProbeResult, ChangeEntry, PassReport, RunSummary
  Error types      : ParseError, DocumentIOError, ProbeError, ManifestError, ConfigError
"""

# --- Pipeline and configuration ---
from .pipeline import FormTablePipeline
from .config import Settings, RepairTrigger

# --- Stages ---
from .parser import TableParser
from .prober import URLProber, ProbeCache
from .repair import LinkRepairPolicy
from .parity import ParityEnforcer
from .serializer import serialize, splice

# --- Data models ---
from .schemas import (
    Language,
    Cell,
    Row,
    TableBlock,
    ProbeResult,
    RepairAction,
    ChangeEntry,
    PassReport,
    RunSummary,
)

# --- Exceptions ---
from .exceptions import (
    FormTablesError,
    ParseError,
    DocumentIOError,
    ProbeError,
    ManifestError,
    ConfigError,
)

# --- Inputs ---
from .manifest import load_manifest, parse_manifest

__version__ = "1.0.0"
__all__ = [
    "FormTablePipeline",
    "Settings",
    "RepairTrigger",
    "TableParser",
    "URLProber",
    "ProbeCache",
    "LinkRepairPolicy",
    "ParityEnforcer",
    "serialize",
    "splice",
    "Language",
    "Cell",
    "Row",
    "TableBlock",
    "ProbeResult",
    "RepairAction",
    "ChangeEntry",
    "PassReport",
    "RunSummary",
    "FormTablesError",
    "ParseError",
    "DocumentIOError",
    "ProbeError",
    "ManifestError",
    "ConfigError",
    "load_manifest",
    "parse_manifest",
]
