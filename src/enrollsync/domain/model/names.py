"""Display-name resolution for person records shaped in several historical ways.

Records carry either a ``firstName``/``lastName`` pair, a legacy ``fullName``
field, or nothing usable. Each shape is its own variant; resolution walks an
explicit priority list and the first variant that matches wins.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final


@dataclass(frozen=True, slots=True)
class SplitName:
    first_name: str = ""
    last_name: str = ""

    @property
    def display(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True, slots=True)
class LegacyFullName:
    full_name: str

    @property
    def display(self) -> str:
        return self.full_name.strip()


@dataclass(frozen=True, slots=True)
class UnknownName:
    @property
    def display(self) -> str:
        return ""


type PersonName = SplitName | LegacyFullName | UnknownName
type NameRule = Callable[[Mapping[str, Any]], PersonName | None]

UNKNOWN_NAME: Final = UnknownName()


def _text(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    return value.strip() if isinstance(value, str) else ""


def _split_name(record: Mapping[str, Any]) -> PersonName | None:
    first, last = _text(record, "firstName"), _text(record, "lastName")
    if first or last:
        return SplitName(first_name=first, last_name=last)
    return None


def _legacy_full_name(record: Mapping[str, Any]) -> PersonName | None:
    full = _text(record, "fullName")
    return LegacyFullName(full_name=full) if full else None


NAME_RULES: Final[tuple[NameRule, ...]] = (_split_name, _legacy_full_name)


def resolve_name(record: Mapping[str, Any] | None) -> PersonName:
    """Return the first name variant that matches ``record``."""
    if not record:
        return UNKNOWN_NAME
    for rule in NAME_RULES:
        name = rule(record)
        if name is not None:
            return name
    return UNKNOWN_NAME


def display_name(name: PersonName, *, fallback: str = "") -> str:
    match name:
        case SplitName() | LegacyFullName():
            return name.display or fallback
        case UnknownName():
            return fallback
