"""Sort token helpers for list endpoints."""

from __future__ import annotations

from collections.abc import Collection
from collections.abc import Iterable


def split_sort_params(values: Iterable[str]) -> list[str]:
    """Expand repeated and comma-separated `sort` values into tokens."""
    tokens: list[str] = []
    for value in values:
        for token in value.split(","):
            token = token.strip()
            if token:
                tokens.append(token)
    return tokens


def normalize_and_validate_sort(
    tokens: Iterable[str],
    allowed: Collection[str],
) -> tuple[list[str], list[str]]:
    """Split sort tokens into the valid ones and the invalid field names.

    Valid tokens keep their `-` direction prefix; invalid entries are reported
    as bare field names.
    """
    valid: list[str] = []
    invalid: list[str] = []
    for token in tokens:
        field = token[1:] if token.startswith("-") else token
        if field in allowed:
            valid.append(token)
        else:
            invalid.append(field)
    return valid, invalid
