"""Version string normalization for probed executables and release tags."""

from __future__ import annotations

import string
from collections.abc import Sequence

DEFAULT_PROGRAM_NAMES: tuple[str, ...] = ("pandoc.exe", "pandoc")
_VERSION_CHARS = frozenset(string.digits + ".")


def _leading_version(token: str) -> str | None:
    """Return the leading run of digits and dots of *token* if it starts with a digit."""
    if not token or token[0] not in string.digits:
        return None
    end = 0
    while end < len(token) and token[end] in _VERSION_CHARS:
        end += 1
    return token[:end]


def normalize_version(text: str, program_names: Sequence[str] = DEFAULT_PROGRAM_NAMES) -> str:
    """
    Extract a canonical dotted version from free-form version text.

    Examples:
        ``"pandoc.exe 3.7.0.2"``, ``"pandoc 3.7.0.2"``, ``"v3.7.0.2"`` and ``"3.7.0.2"``
        all normalize to ``"3.7.0.2"``.

    Args:
        text: Raw version text, e.g. a release tag or a ``--version`` line.
        program_names: Program-name substrings to ignore, longest first.

    Returns:
        The version, or the text with program names stripped when no token starts
        with a digit. Never empty for non-empty input.

    """
    stripped = text.strip()
    for part in stripped.split():
        if any(name in part for name in program_names):
            continue
        version = _leading_version(part.lstrip("v"))
        if version:
            return version

    cleaned = stripped
    for name in sorted(program_names, key=len, reverse=True):
        cleaned = cleaned.replace(name, "")
    cleaned = cleaned.strip().lstrip("v").strip()
    return cleaned or stripped or text


def extract_version_from_output(output: str, program_names: Sequence[str] = DEFAULT_PROGRAM_NAMES) -> str:
    """Normalize the first line of ``--version`` output."""
    lines = output.strip().splitlines()
    if not lines:
        return "Unknown"
    return normalize_version(lines[0], program_names)


def is_update_available(current: str | None, latest: str, program_names: Sequence[str] = DEFAULT_PROGRAM_NAMES) -> bool:
    """
    Tell whether *latest* differs from *current*.

    Comparison is string inequality of the normalized forms, not semantic ordering,
    so ``"3.6"`` and ``"3.6.0"`` count as different versions.
    """
    if current is None:
        return True
    return normalize_version(current, program_names) != normalize_version(latest, program_names)
