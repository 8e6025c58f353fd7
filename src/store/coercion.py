"""Type coercion for raw CSV tokens.

This module converts one raw text token into a typed value according to
a field's type descriptor. Union descriptors resolve through a fixed
candidate precedence so existing files keep their on-disk meaning.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable

from core.constants import BOOL_FALSE_TOKENS, BOOL_TRUE_TOKENS, UNIX_EPOCH
from core.errors import AmbiguousUnionTypeError, CoercionError
from core.types import SingleType, TypeDescriptor, UnionType

UNION_PRECEDENCE: tuple[type, ...] = (str, int, float, bool, datetime, date)

Converter = Callable[[str | None], Any]


def coerce(
    raw_token: str | None,
    descriptor: TypeDescriptor,
    field_name: str | None = None,
) -> Any:
    """Convert a raw token into the value its descriptor declares.

    Args:
        raw_token: Cell text from the CSV file, ``None`` when missing.
        descriptor: Declared single or union type of the target field.
        field_name: Optional field name used in error messages.

    Returns:
        Typed value.

    Raises:
        AmbiguousUnionTypeError: If a union has no recognized candidate.
        CoercionError: If the token cannot be converted to any candidate.
    """
    if descriptor.nullable and not raw_token:
        return None
    if isinstance(descriptor, UnionType):
        return _coerce_union(raw_token, descriptor, field_name)
    return _coerce_single(raw_token, descriptor, field_name)


def recognized_candidates(descriptor: UnionType) -> tuple[type, ...]:
    """Return union members the engine can produce, in precedence order."""
    return tuple(candidate for candidate in UNION_PRECEDENCE if descriptor.contains(candidate))


def _coerce_single(raw_token: str | None, descriptor: SingleType, field_name: str | None) -> Any:
    """Convert a token for a single-typed field.

    Args:
        raw_token: Cell text, ``None`` when missing.
        descriptor: Declared single type.
        field_name: Optional field name used in error messages.

    Returns:
        Typed value; the raw token itself for types without a converter.

    Raises:
        CoercionError: If the converter rejects the token.
    """
    converter = _SINGLE_CONVERTERS.get(descriptor.py_type)
    if converter is None:
        return raw_token
    try:
        return converter(raw_token)
    except ValueError as error:
        raise CoercionError(
            f"Cannot convert {raw_token!r} to {_type_name(descriptor.py_type)}"
            f"{_field_suffix(field_name)}: {error}"
        ) from error


def _coerce_union(raw_token: str | None, descriptor: UnionType, field_name: str | None) -> Any:
    """Convert a token with the first union candidate that accepts it.

    Args:
        raw_token: Cell text, ``None`` when missing.
        descriptor: Declared union type.
        field_name: Optional field name used in error messages.

    Returns:
        Value of the first accepting candidate in precedence order.

    Raises:
        AmbiguousUnionTypeError: If no candidate is recognized.
        CoercionError: If every recognized candidate rejects the token.
    """
    candidates = recognized_candidates(descriptor)
    if not candidates:
        names = ", ".join(_type_name(candidate) for candidate in descriptor.candidates)
        raise AmbiguousUnionTypeError(
            f"Cannot select a type from union [{names}]{_field_suffix(field_name)}. "
            "Declare at least one of str, int, float, bool, datetime, or date."
        )
    for candidate in candidates:
        try:
            return _UNION_CONVERTERS[candidate](raw_token)
        except ValueError:
            continue
    names = ", ".join(_type_name(candidate) for candidate in candidates)
    raise CoercionError(
        f"Cannot convert {raw_token!r} to any of [{names}]{_field_suffix(field_name)}"
    )


def _to_str(raw_token: str | None) -> str:
    return "" if raw_token is None else raw_token


def _to_int(raw_token: str | None) -> int:
    """Parse an integer; a missing token is 0."""
    if not raw_token:
        return 0
    return int(raw_token.strip())


def _to_float(raw_token: str | None) -> float:
    """Parse a float; a missing token is 0.0."""
    if not raw_token:
        return 0.0
    return float(raw_token.strip())


def _to_bool(raw_token: str | None) -> bool:
    """Parse a boolean token case-insensitively.

    Raises:
        ValueError: If the token is not a known true or false spelling.
    """
    token = (raw_token or "").strip().lower()
    if token in BOOL_TRUE_TOKENS:
        return True
    if token in BOOL_FALSE_TOKENS:
        return False
    raise ValueError(f"unrecognized boolean token {raw_token!r}")


def _to_datetime_or_now(raw_token: str | None) -> datetime:
    """Parse an ISO-8601 datetime; a missing token is the current UTC time."""
    if not raw_token:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(raw_token.strip())


def _to_date_or_today(raw_token: str | None) -> date:
    """Parse an ISO-8601 date; a missing token is today in UTC."""
    if not raw_token:
        return datetime.now(timezone.utc).date()
    return datetime.fromisoformat(raw_token.strip()).date()


def _to_datetime_or_epoch(raw_token: str | None) -> datetime:
    """Parse an ISO-8601 datetime; a missing token is the Unix epoch in UTC."""
    return datetime.fromisoformat(raw_token.strip() if raw_token else UNIX_EPOCH)


def _to_date_or_epoch(raw_token: str | None) -> date:
    return _to_datetime_or_epoch(raw_token).date()


def _type_name(py_type: Any) -> str:
    return getattr(py_type, "__name__", repr(py_type))


def _field_suffix(field_name: str | None) -> str:
    """Return the error-message suffix naming a field, or nothing."""
    return f" for field '{field_name}'" if field_name else ""


_SINGLE_CONVERTERS: dict[Any, Converter] = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    datetime: _to_datetime_or_now,
    date: _to_date_or_today,
}

_UNION_CONVERTERS: dict[type, Converter] = {
    str: _to_str,
    int: _to_int,
    float: _to_float,
    bool: _to_bool,
    datetime: _to_datetime_or_epoch,
    date: _to_date_or_epoch,
}
