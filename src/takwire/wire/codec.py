# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Protocol buffers wire encoding primitives.

   A protocol buffer message is a series of key-value pairs. The binary
   version of a message just uses the field's number as the key, the name
   and declared type for each field can only be determined on the decoding
   end by referencing the message type's definition.

   Each key in the streamed message is a varint with the value
   (field_number << 3) | wire_type, in other words the last three bits of
   the number store the wire type.

     +----+--------------------+------------------------------------------+
     | ID | Name               | Used For                                 |
     +----+--------------------+------------------------------------------+
     | 0  | VARINT             | int32, int64, uint32, uint64, sint32,    |
     |    |                    | sint64, bool, enum                       |
     | 1  | I64                | fixed64, sfixed64, double                |
     | 2  | LEN                | string, bytes, embedded messages,        |
     |    |                    | packed repeated fields                   |
     | 3  | SGROUP             | group start (deprecated)                 |
     | 4  | EGROUP             | group end (deprecated)                   |
     | 5  | I32                | fixed32, sfixed32, float                 |
     +----+--------------------+------------------------------------------+

   Varints are a method of serializing integers using one or more bytes.
   Each byte in a varint, except the last byte, has the most significant
   bit set, which indicates that further bytes are to come. The lower 7
   bits of each byte store the number in groups of 7 bits, least
   significant group first.

All decoders take a buffer and an offset into it and return the decoded
value together with the number of bytes it took on the wire. They never
modify the buffer and raise a DecodeError subclass when the value cannot
be decoded.

"""

import struct
from enum import IntEnum
from typing import Any, Final

from .exceptions import DecodeError, InvalidTagError, OverflowDecodeError, TruncatedError, UnsupportedTagError

__all__ = (  # noqa: RUF022
    'WireData',
    'WireType',

    'MAX_VARINT_LENGTH',
    'MAX_FIELD_NUMBER',

    'decode_varint',
    'encode_varint',
    'decode_zigzag',
    'zigzag_decode',
    'zigzag_encode',

    'decode_fixed32',
    'decode_fixed64',
    'decode_float',
    'decode_double',

    'decode_tag',
    'encode_tag',

    'decode_length_delimited',
    'encode_length_delimited',

    'decode_value',
)


type WireData = bytes | bytearray | memoryview


class WireType(IntEnum):
    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    FIXED32 = 5

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


MAX_VARINT_LENGTH: Final = 10
MAX_FIELD_NUMBER: Final = 2**29 - 1

_UINT64_MASK: Final = 2**64 - 1

_uint32: Final = struct.Struct('<I')
_uint64: Final = struct.Struct('<Q')
_float: Final = struct.Struct('<f')
_double: Final = struct.Struct('<d')


def _check_offset(offset: int) -> None:
    if offset < 0:
        raise ValueError(f'The offset must be a non-negative integer: {offset!r}')


# Varints

def decode_varint(buffer: WireData, offset: int = 0) -> tuple[int, int]:
    """Decode an unsigned varint, returning its value and the number of bytes it used"""
    _check_offset(offset)
    buffer_length = len(buffer)
    value = 0
    for index in range(MAX_VARINT_LENGTH):
        position = offset + index
        if position >= buffer_length:
            raise TruncatedError('Insufficient data in buffer to extract varint', offset=position, operation='varint')
        byte = buffer[position]
        value |= (byte & 0x7f) << (7 * index)
        if not byte & 0x80:
            return value & _UINT64_MASK, index + 1
    raise OverflowDecodeError(f'Varint is longer than {MAX_VARINT_LENGTH} bytes', offset=offset, operation='varint')


def encode_varint(value: int, /) -> bytes:
    if value < 0 or value.bit_length() > 64:
        raise ValueError(f'Value is out of range for an unsigned 64-bit varint: {value!r}')
    data = bytearray()
    while value > 0x7f:
        data.append((value & 0x7f) | 0x80)
        value >>= 7
    data.append(value)
    return bytes(data)


def zigzag_decode(value: int, /) -> int:
    return (value >> 1) ^ -(value & 1)


def zigzag_encode(value: int, /) -> int:
    if value.bit_length() > 63 and value != -2**63:
        raise ValueError(f'Value is out of range for a signed 64-bit varint: {value!r}')
    return (value << 1) ^ (value >> 63)


def decode_zigzag(buffer: WireData, offset: int = 0) -> tuple[int, int]:
    """Decode a zigzag encoded signed varint (the sint32/sint64 types)"""
    value, consumed = decode_varint(buffer, offset)
    return zigzag_decode(value), consumed


# Fixed width values

def _unpack(fmt: struct.Struct, buffer: WireData, offset: int, operation: str) -> tuple[Any, int]:
    _check_offset(offset)
    if offset + fmt.size > len(buffer):
        raise TruncatedError(f'Insufficient data in buffer to extract a {fmt.size * 8}-bit value', offset=offset, operation=operation)
    return fmt.unpack_from(buffer, offset)[0], fmt.size


def decode_fixed32(buffer: WireData, offset: int = 0) -> tuple[int, int]:
    return _unpack(_uint32, buffer, offset, 'fixed32')


def decode_fixed64(buffer: WireData, offset: int = 0) -> tuple[int, int]:
    return _unpack(_uint64, buffer, offset, 'fixed64')


def decode_float(buffer: WireData, offset: int = 0) -> tuple[float, int]:
    return _unpack(_float, buffer, offset, 'float')


def decode_double(buffer: WireData, offset: int = 0) -> tuple[float, int]:
    return _unpack(_double, buffer, offset, 'double')


# Tags

def decode_tag(buffer: WireData, offset: int = 0) -> tuple[int, WireType, int]:
    """Decode a field tag, returning the field number, the wire type and the number of bytes used"""
    try:
        key, consumed = decode_varint(buffer, offset)
    except DecodeError as exc:
        raise type(exc)(f'Cannot decode field tag: {exc}', offset=exc.offset, operation='tag') from exc
    field_number = key >> 3
    if field_number == 0:
        raise UnsupportedTagError('Field number 0 is reserved', offset=offset, operation='tag')
    if field_number > MAX_FIELD_NUMBER:
        raise InvalidTagError(f'Field number is out of range: {field_number}', offset=offset, operation='tag')
    match key & 0x07:
        case 3 | 4 as group_type:
            raise UnsupportedTagError(f'Unsupported wire type {group_type} for field {field_number}', offset=offset, operation='tag')
        case 6 | 7 as invalid_type:
            raise InvalidTagError(f'Invalid wire type {invalid_type} for field {field_number}', offset=offset, operation='tag')
    wire_type = WireType(key & 0x07)
    return field_number, wire_type, consumed


def encode_tag(field_number: int, wire_type: WireType | int) -> bytes:
    if not 0 < field_number <= MAX_FIELD_NUMBER:
        raise ValueError(f'Field number is out of range: {field_number!r}')
    return encode_varint((field_number << 3) | WireType(wire_type))


# Length delimited values

def decode_length_delimited(buffer: WireData, offset: int = 0) -> tuple[bytes, int, int]:
    """
    Decode a length prefixed value.

    Returns the payload, its length and the number of bytes used on the wire
    (the length prefix plus the payload). The declared length is checked
    against the buffer before anything is copied out of it.
    """
    try:
        length, length_size = decode_varint(buffer, offset)
    except DecodeError as exc:
        raise type(exc)(f'Cannot decode the value length: {exc}', offset=exc.offset, operation='length') from exc
    start = offset + length_size
    if start + length > len(buffer):
        raise TruncatedError(f'Declared length {length} exceeds the available data ({len(buffer) - start} bytes)', offset=offset, operation='length-delimited')
    return bytes(buffer[start:start + length]), length, length_size + length


def encode_length_delimited(data: bytes, /) -> bytes:
    return encode_varint(len(data)) + data


# Generic values

def decode_value(buffer: WireData, offset: int, wire_type: WireType) -> tuple[int | bytes, int]:
    """
    Decode the raw value of a field with the given wire type.

    Varints are returned as unsigned integers while the other wire types are
    returned as raw bytes, to be interpreted later according to the schema.
    """
    match wire_type:
        case WireType.VARINT:
            return decode_varint(buffer, offset)
        case WireType.FIXED64 | WireType.FIXED32:
            size = 8 if wire_type is WireType.FIXED64 else 4
            _check_offset(offset)
            if offset + size > len(buffer):
                raise TruncatedError(f'Insufficient data in buffer to extract a {size * 8}-bit value', offset=offset, operation=wire_type.name.lower())
            return bytes(buffer[offset:offset + size]), size
        case WireType.LENGTH_DELIMITED:
            data, _, consumed = decode_length_delimited(buffer, offset)
            return data, consumed
        case _:
            raise UnsupportedTagError(f'Unsupported wire type: {wire_type!r}', offset=offset, operation='value')
