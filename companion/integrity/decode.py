"""Decode-or-default combinators for untrusted, JSON-shaped values.

Each ``as_*`` decoder returns the value with its expected Python type, or
``None`` when the value is absent or has the wrong type. Recovery code composes
them with :func:`or_default` / :func:`or_else` instead of scattering
``isinstance`` checks through every field.
"""

import math
from collections.abc import Mapping
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def as_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def as_number(value: Any) -> int | float | None:
    """Finite int or float. ``True``/``False`` are not numbers here.

    Ints too large to convert to a float are rejected too.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(float(value))
    except OverflowError:
        return None
    return value if finite else None


def as_int(value: Any) -> int | None:
    """Like :func:`as_number`, but only integral values (``2.0`` decodes as ``2``)."""
    number = as_number(value)
    if number is None:
        return None
    if isinstance(number, float):
        return int(number) if number.is_integer() else None
    return number


def as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def as_list(value: Any) -> list | None:
    return value if isinstance(value, list) else None


def or_default(value: T | None, default: T) -> T:
    return default if value is None else value


def or_else(value: T | None, factory: Callable[[], T]) -> T:
    """Like :func:`or_default`, but only builds the fallback when it is needed."""
    return factory() if value is None else value
