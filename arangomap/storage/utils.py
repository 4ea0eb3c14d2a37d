"""Naming helpers for ArangoDB collections and document keys.

Collection names and `_key` values must follow the restrictions in the
ArangoDB manual:
https://docs.arangodb.com/3.11/concepts/data-structure/documents/#document-keys

Model names are free-form, so they are normalised here before they become
collection names. Keys generated by the mapper already satisfy the rules;
caller-supplied keys are checked with :func:`is_valid_key`.
"""
from __future__ import annotations

import re
import uuid
from typing import Final

__all__: list[str] = [
    "safe_name",
    "safe_key",
    "is_valid_key",
    "generate_key",
]

# Collection names: letters, digits, underscore and dash; no leading underscore
_NAME_DISALLOWED_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9_\-]")

# Characters allowed in document keys
_KEY_DISALLOWED_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9_\-:.@()+,=;$!*'%]")
_KEY_VALID_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_\-:.@()+,=;$!*'%]{1,254}$")


def safe_name(name: str, prefix: str = "") -> str:
    """Return a collection name derived from a model name.

    Disallowed characters become underscores and leading underscores are
    stripped, since system collections own that namespace.
    """
    cleaned = _NAME_DISALLOWED_RE.sub("_", f"{prefix}{name}")
    return cleaned.lstrip("_") or "documents"


def safe_key(key: str) -> str:
    """Return `key` with spaces turned into underscores and invalid characters dropped."""
    key = key.replace(" ", "_")
    return _KEY_DISALLOWED_RE.sub("", key)[:254] or "doc"


def is_valid_key(key: str) -> bool:
    return bool(_KEY_VALID_RE.match(key))


def generate_key() -> str:
    """Generate a new document key (32 hex characters)."""
    return uuid.uuid4().hex
