from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import partial
from pathlib import Path, PurePath
from typing import Any, Final, Literal, TypeVar, overload
from uuid import UUID

import msgspec

from tipjar_common.utils.json_model import JsonModel

Serializer = Callable[[Any], Any]

type TypeEncodersMap = dict[Any, Callable[[Any], Any]]


class _EmptyEnum(Enum):
    """A sentinel enum used as placeholder."""

    EMPTY = 0


EmptyType = Literal[_EmptyEnum.EMPTY]
Empty: Final = _EmptyEnum.EMPTY


class SerializationError(Exception):
    """Encoding or decoding of an object failed."""


__all__ = (
    "SerializationError",
    "decode_json",
    "default_serializer",
    "encode_json",
)

T = TypeVar("T")

DEFAULT_TYPE_ENCODERS: TypeEncodersMap = {
    Path: str,
    PurePath: str,
    UUID: str,
    datetime: lambda val: val.isoformat(),
    date: lambda val: val.isoformat(),
    time: lambda val: val.isoformat(),
    Decimal: lambda val: int(val) if val.as_tuple().exponent >= 0 else float(val),
    JsonModel: lambda val: val.to_dict(mode="json"),
    Enum: lambda val: val.value,
    set: list,
    frozenset: list,
}


def default_serializer(value: Any, type_encoders: TypeEncodersMap | None = None) -> Any:
    """Transform values non-natively supported by ``msgspec``

    Args:
        value: A value to serialize
        type_encoders: Mapping of types to callables to transform types
    Returns:
        A serialized value
    Raises:
        TypeError: if value is not supported
    """
    type_encoders = DEFAULT_TYPE_ENCODERS if type_encoders is None else {**DEFAULT_TYPE_ENCODERS, **type_encoders}

    # SQLAlchemy rows
    if hasattr(value, "__tablename__") and hasattr(value, "__table__"):
        return {c.name: default_serializer(getattr(value, c.name)) for c in value.__table__.columns}

    for base in value.__class__.__mro__[:-1]:
        try:
            encoder = type_encoders[base]
            return encoder(value)
        except KeyError:
            continue

    raise TypeError(f"Unsupported type: {type(value)!r}")


def default_deserializer(target_type: Any, value: Any) -> Any:
    if isinstance(value, target_type):
        return value

    if issubclass(target_type, Path | PurePath | UUID):
        return target_type(value)

    raise TypeError(f"Unsupported type: {type(value)!r}")


_default_json_encoder = msgspec.json.Encoder(enc_hook=default_serializer)
_default_json_decoder = msgspec.json.Decoder(dec_hook=default_deserializer)


def encode_json(value: Any, serializer: Serializer | None = None) -> bytes:
    """Encode a value into JSON.

    Raises:
        SerializationError: If error encoding ``value``.
    """
    try:
        return msgspec.json.encode(value, enc_hook=serializer) if serializer else _default_json_encoder.encode(value)
    except (TypeError, msgspec.EncodeError) as msgspec_error:
        raise SerializationError(str(msgspec_error)) from msgspec_error


@overload
def decode_json(value: str | bytes, strict: bool = ...) -> Any: ...


@overload
def decode_json[T](value: str | bytes, target_type: type[T], strict: bool = ...) -> T: ...


def decode_json[T](  # type: ignore[misc]
    value: str | bytes,
    target_type: type[T] | EmptyType = Empty,
    strict: bool = True,
) -> T:
    """Decode a JSON string/bytes into an object.

    Raises:
        SerializationError: If error decoding ``value``.
    """
    try:
        if target_type is Empty:
            return _default_json_decoder.decode(value)
        return msgspec.json.decode(value, dec_hook=partial(default_deserializer), type=target_type, strict=strict)
    except msgspec.DecodeError as msgspec_error:
        raise SerializationError(str(msgspec_error)) from msgspec_error
