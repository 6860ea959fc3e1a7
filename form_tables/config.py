"""
Run configuration.

Settings come from FORM_TABLES_* environment variables (the command-line
scripts load a .env file first), then command-line flags override them.
"""

import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError


class RepairTrigger(str, Enum):
    """
    Which dead links the repair pass acts on.

    NOT_FOUND: only a definitive 404 is substituted or blanked; timeouts,
               5xx and transport errors leave the link in place with a warning.
    ANY_DEAD:  every not-live probe result is repaired.
    """
    NOT_FOUND = "not_found"
    ANY_DEAD = "any_dead"


DEFAULT_USER_AGENT = "form-tables-linkcheck/1.0"

# Legacy form-family file-name prefix -> successor prefix
DEFAULT_SUBSTITUTIONS = {"5000-": "5100-"}


class Settings(BaseModel):
    """Everything a run needs besides the list of forms."""
    timeout: float = Field(default=15.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    base_url: str = ""             # Base for resolving relative hrefs when probing
    repair_trigger: RepairTrigger = RepairTrigger.NOT_FOUND
    substitutions: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_SUBSTITUTIONS))
    min_cells: int = Field(default=2, ge=1)
    strict_year: bool = True
    max_workers: int = Field(default=1, ge=1)
    backup: bool = True
    template_token: str = "{{FORM}}"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from FORM_TABLES_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values = {}

        mapping = {
            "FORM_TABLES_TIMEOUT": "timeout",
            "FORM_TABLES_USER_AGENT": "user_agent",
            "FORM_TABLES_BASE_URL": "base_url",
            "FORM_TABLES_REPAIR_TRIGGER": "repair_trigger",
            "FORM_TABLES_MIN_CELLS": "min_cells",
            "FORM_TABLES_STRICT_YEAR": "strict_year",
            "FORM_TABLES_MAX_WORKERS": "max_workers",
            "FORM_TABLES_BACKUP": "backup",
            "FORM_TABLES_TEMPLATE_TOKEN": "template_token",
        }
        for var, field in mapping.items():
            raw = env.get(var)
            if raw is not None and raw.strip() != "":
                values[field] = raw.strip()

        raw_subs = env.get("FORM_TABLES_SUBSTITUTIONS")
        if raw_subs is not None and raw_subs.strip():
            values["substitutions"] = parse_substitutions(raw_subs)

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid FORM_TABLES_* setting: {e.errors()[0]['msg']}",
                details={"errors": e.errors(include_url=False)}
            )

    def with_overrides(self, **overrides) -> "Settings":
        """Copy with the non-None overrides applied (used for CLI flags)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        try:
            return self.model_validate({**self.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigError(
                f"Invalid setting: {e.errors()[0]['msg']}",
                details={"errors": e.errors(include_url=False)}
            )


def parse_substitutions(raw: str) -> dict[str, str]:
    """
    Parse "old=new,old=new" into a prefix mapping.

    >>> parse_substitutions("5000-=5100-")
    {'5000-': '5100-'}
    """
    result = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        old, sep, new = pair.partition("=")
        if not sep or not old.strip() or not new.strip():
            raise ConfigError(f"Bad substitution entry: {pair!r} (expected old=new)")
        result[old.strip()] = new.strip()
    return result
