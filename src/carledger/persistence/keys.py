"""Composite key encoding.

A composite key is ``\\x00`` + index name + ``\\x00`` followed by each part
terminated by ``\\x00``. The leading marker keeps composite keys out of the
primary-key range, and the terminators make a key built from the first N
parts a byte-wise prefix of every key sharing those parts.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..errors import InvalidOperationError

NAMESPACE = "\x00"
DELIMITER = "\x00"
# Never appears in UTF-8, so it sorts after every encoded key with the prefix.
PREFIX_UPPER_BOUND = b"\xff"


def _check_part(value: str, what: str) -> None:
    if DELIMITER in value:
        raise InvalidOperationError(f"{what} must not contain a NUL character: {value!r}")


def create_composite_key(index_name: str, parts: Sequence[str]) -> str:
    """Build the composite key for ``parts`` under ``index_name``."""
    if not index_name:
        raise InvalidOperationError("Index name must not be empty")
    _check_part(index_name, "Index name")
    for part in parts:
        _check_part(part, "Key part")
    return NAMESPACE + index_name + DELIMITER + "".join(p + DELIMITER for p in parts)


def split_composite_key(key: str) -> tuple[str, list[str]]:
    """Split a composite key back into its index name and parts."""
    if not is_composite_key(key):
        raise InvalidOperationError(f"Not a composite key: {key!r}")
    components = key[1:].split(DELIMITER)
    # Trailing delimiter leaves an empty last element
    return components[0], components[1:-1]


def is_composite_key(key: str) -> bool:
    return key.startswith(NAMESPACE)


def validate_simple_key(key: str) -> None:
    """Primary keys must be non-empty and outside the composite namespace."""
    if not key:
        raise InvalidOperationError("Key must not be empty")
    if is_composite_key(key):
        raise InvalidOperationError(f"Key must not start with a NUL character: {key!r}")


__all__ = [
    "create_composite_key",
    "split_composite_key",
    "is_composite_key",
    "validate_simple_key",
    "PREFIX_UPPER_BOUND",
]
