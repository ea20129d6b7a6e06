# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import struct
from collections.abc import MutableMapping
from enum import IntEnum
from typing import ClassVar, Protocol, runtime_checkable

from takwire.wire import WireType, parse_nested
from takwire.wire.message import RawValue

__all__ = (  # noqa: RUF022
    # Protocols and the adapter registry

    'ValueAdapter',
    'AdapterRegistry',

    # Scalar adapters

    'BooleanAdapter',
    'UInt64Adapter',
    'Int64Adapter',
    'SInt64Adapter',
    'DoubleAdapter',
    'FloatAdapter',
    'StringAdapter',
    'BytesAdapter',

    # Well known wrapper types

    'DoubleValueAdapter',
    'UInt64ValueAdapter',

    # Parametrized adapters

    'EnumAdapter',

    # Enum base

    'ProtobufEnum',
)


@runtime_checkable
class ValueAdapter[T](Protocol):
    """Converts a raw value decoded from the wire into a value of type T"""

    wire_type: WireType

    def from_wire(self, value: RawValue, /) -> T: ...


class AdapterRegistry:
    _adapters: ClassVar[MutableMapping[type, ValueAdapter]] = {}

    @classmethod
    def associate(cls, data_type: type, adapter: ValueAdapter) -> None:
        cls._adapters[data_type] = adapter

    @classmethod
    def get_adapter(cls, data_type: type) -> ValueAdapter | None:
        return cls._adapters.get(data_type, None)


def _check_bytes(value: RawValue, size: int | None = None) -> bytes:
    if not isinstance(value, bytes):
        raise TypeError(f'Expected bytes, got {value.__class__.__name__}')
    if size is not None and len(value) != size:
        raise ValueError(f'Expected {size} bytes, got {len(value)}')
    return value


def _check_int(value: RawValue) -> int:
    if not isinstance(value, int):
        raise TypeError(f'Expected an integer, got {value.__class__.__name__}')
    return value


# Scalar adapters

class BooleanAdapter:
    wire_type: ClassVar[WireType] = WireType.VARINT

    @staticmethod
    def from_wire(value: RawValue, /) -> bool:
        return _check_int(value) != 0


class UInt64Adapter:
    wire_type: ClassVar[WireType] = WireType.VARINT

    @staticmethod
    def from_wire(value: RawValue, /) -> int:
        return _check_int(value)


class Int64Adapter:
    # int32 and int64 (negative values are sign extended to 64 bits on the wire)
    wire_type: ClassVar[WireType] = WireType.VARINT

    @staticmethod
    def from_wire(value: RawValue, /) -> int:
        value = _check_int(value)
        return value - 2**64 if value >= 2**63 else value


class SInt64Adapter:
    wire_type: ClassVar[WireType] = WireType.VARINT

    @staticmethod
    def from_wire(value: RawValue, /) -> int:
        value = _check_int(value)
        return (value >> 1) ^ -(value & 1)


class DoubleAdapter:
    wire_type: ClassVar[WireType] = WireType.FIXED64

    @staticmethod
    def from_wire(value: RawValue, /) -> float:
        return struct.unpack('<d', _check_bytes(value, 8))[0]


class FloatAdapter:
    wire_type: ClassVar[WireType] = WireType.FIXED32

    @staticmethod
    def from_wire(value: RawValue, /) -> float:
        return struct.unpack('<f', _check_bytes(value, 4))[0]


class StringAdapter:
    wire_type: ClassVar[WireType] = WireType.LENGTH_DELIMITED

    @staticmethod
    def from_wire(value: RawValue, /) -> str:
        try:
            return _check_bytes(value).decode()
        except UnicodeDecodeError as exc:
            raise ValueError(f'Cannot decode bytes to string: {exc}') from exc


class BytesAdapter:
    wire_type: ClassVar[WireType] = WireType.LENGTH_DELIMITED

    @staticmethod
    def from_wire(value: RawValue, /) -> bytes:
        return bytes(_check_bytes(value))


AdapterRegistry.associate(bool, BooleanAdapter)
AdapterRegistry.associate(int, UInt64Adapter)
AdapterRegistry.associate(float, DoubleAdapter)
AdapterRegistry.associate(str, StringAdapter)
AdapterRegistry.associate(bytes, BytesAdapter)


# Well known wrapper types (google.protobuf.DoubleValue, UInt64Value, ...)
#
# These are messages with the wrapped value in field 1. A wrapper that is
# present but empty holds the default value for its type. A wrapper that
# cannot be walked raises the DecodeError of its walk.

class DoubleValueAdapter:
    wire_type: ClassVar[WireType] = WireType.LENGTH_DELIMITED

    @staticmethod
    def from_wire(value: RawValue, /) -> float:
        fields = parse_nested(_check_bytes(value))
        if (error := fields.error) is not None:
            raise type(error)(f'Cannot decode DoubleValue wrapper: {error}', offset=error.offset, operation=error.operation) from error
        values = fields.values_of(1, WireType.FIXED64)
        return DoubleAdapter.from_wire(values[0]) if values else 0.0


class UInt64ValueAdapter:
    # also covers UInt32Value
    wire_type: ClassVar[WireType] = WireType.LENGTH_DELIMITED

    @staticmethod
    def from_wire(value: RawValue, /) -> int:
        fields = parse_nested(_check_bytes(value))
        if (error := fields.error) is not None:
            raise type(error)(f'Cannot decode UInt64Value wrapper: {error}', offset=error.offset, operation=error.operation) from error
        values = fields.values_of(1, WireType.VARINT)
        return _check_int(values[0]) if values else 0


# Parametrized adapters

class ProtobufEnum(IntEnum):
    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


class EnumAdapter[E: IntEnum]:
    """
    Adapter for enum fields.

    Protobuf enums are open, so values that are not members of the enum
    type are returned as plain integers rather than being rejected.
    """

    wire_type: WireType = WireType.VARINT

    def __init__(self, enum_type: type[E]) -> None:
        self.enum_type = enum_type

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self.enum_type.__qualname__})'

    def from_wire(self, value: RawValue, /) -> E | int:
        value = Int64Adapter.from_wire(value)
        try:
            return self.enum_type(value)
        except ValueError:
            return value
