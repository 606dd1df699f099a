"""Case-insensitive glob matching for directory enumeration."""

from __future__ import annotations

from fnmatch import fnmatchcase as _fnmatchcase


def _glob_match(pattern: str, name: str) -> bool:
    """Match *name* against a single-segment glob *pattern*.

    Matching ignores case.  ``*`` and ``?`` match a leading ``.`` like any
    other character, and ``*.*`` matches every name, including names
    without an extension.
    """
    if pattern in ("*", "*.*"):
        return True
    return _fnmatchcase(name.casefold(), pattern.casefold())
