"""Utilities for working with SQLAlchemy enums backed by StrEnum values."""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

EnumT = TypeVar("EnumT", bound=Enum)


def enum_values(enum_cls: type[EnumT]) -> list[Any]:
    """Return the concrete values for a Python ``Enum`` class.

    SQLAlchemy's ``Enum`` type calls ``values_callable`` with the enum class; our enums store
    lowercase ``.value`` strings, so those are persisted instead of member names.
    """
    return [member.value for member in enum_cls]
