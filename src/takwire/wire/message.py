# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Self

from .codec import WireData, WireType, decode_tag, decode_value
from .exceptions import BoundaryError, DecodeError

__all__ = 'Segment', 'Field', 'FieldMap', 'StrayValue', 'parse_message', 'parse_nested'  # noqa: RUF022


type RawValue = int | bytes



class Segment(bytes):
    """
    The payload of a length delimited value.

    It compares equal to the plain bytes of the payload, but it also knows
    the buffer it was decoded from and its offset in that buffer, so that a
    nested message can be walked in place. This keeps the boundary of the
    nested message distinct from the end of the buffer and the offsets of
    any decoding errors relative to the start of the buffer.
    """

    buffer: WireData
    offset: int

    def __new__(cls, buffer: WireData, offset: int, length: int) -> Self:
        instance = super().__new__(cls, buffer[offset:offset + length])
        instance.buffer = buffer
        instance.offset = offset
        return instance


@dataclass(slots=True)
class Field:
    """The values seen on the wire for one field number, in wire order"""

    wire_type: WireType
    values: list[RawValue] = field(default_factory=list)

    @property
    def first(self) -> RawValue:
        return self.values[0]

    @property
    def last(self) -> RawValue:
        return self.values[-1]


@dataclass(frozen=True, slots=True)
class StrayValue:
    """A value whose wire type differs from the one first seen for its field number"""

    field_number: int
    wire_type: WireType
    value: RawValue


class FieldMap(Mapping[int, Field]):
    """
    The generic decoding of a protobuf message.

    Maps field numbers to their wire type and the list of values decoded for
    them. If the walk over the message stopped before reaching the end of it,
    the error attribute holds the reason and the map contains everything that
    was decoded up to that point.
    """

    def __init__(self, fields: Mapping[int, Field] | None = None, /, *, stray: tuple[StrayValue, ...] = (), error: DecodeError | None = None, length: int = 0) -> None:
        self._fields = dict(fields or {})
        self.stray = stray
        self.error = error
        self.length = length

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self._fields!r}, error={self.error!r})'

    def __getitem__(self, field_number: int) -> Field:
        return self._fields[field_number]

    def __iter__(self) -> Iterator[int]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def complete(self) -> bool:
        return self.error is None

    def values_of(self, field_number: int, wire_type: WireType) -> list[RawValue]:
        """Return the values for the field if it is present with the given wire type, or an empty list otherwise"""
        entry = self._fields.get(field_number)
        if entry is None or entry.wire_type is not wire_type:
            return []
        return entry.values


def parse_message(buffer: WireData, offset: int = 0, length: int | None = None) -> FieldMap:
    """
    Decode the (tag, value) pairs of the message found at buffer[offset:offset+length].

    If length is not given, the message extends to the end of the buffer.
    Unknown field numbers are kept, repeated fields keep their wire order.
    Decoding failures do not raise, they stop the walk and are recorded on
    the returned field map together with the partial result.
    """
    buffer_length = len(buffer)
    if length is None:
        length = buffer_length - offset
    if offset < 0 or length < 0 or offset + length > buffer_length:
        raise ValueError(f'The message region [{offset}:{offset + length}] is outside the buffer (size {buffer_length})')

    end = offset + length
    position = offset
    fields: dict[int, Field] = {}
    stray: list[StrayValue] = []
    error: DecodeError | None = None

    while position < end:
        try:
            field_number, wire_type, tag_size = decode_tag(buffer, position)
            if position + tag_size > end:
                raise BoundaryError(f'The tag for field {field_number} extends past the end of the message', offset=position, operation='tag')
            value, value_size = decode_value(buffer, position + tag_size, wire_type)
            if position + tag_size + value_size > end:
                raise BoundaryError(f'The value for field {field_number} extends past the end of the message', offset=position + tag_size, operation=wire_type.name.lower().replace('_', '-'))
        except DecodeError as exc:
            error = exc
            break
        if wire_type is WireType.LENGTH_DELIMITED:
            value = Segment(buffer, position + tag_size + value_size - len(value), len(value))
        position += tag_size + value_size
        entry = fields.setdefault(field_number, Field(wire_type))
        if entry.wire_type is wire_type:
            entry.values.append(value)
        else:
            stray.append(StrayValue(field_number, wire_type, value))

    return FieldMap(fields, stray=tuple(stray), error=error, length=position - offset)


def parse_nested(value: bytes) -> FieldMap:
    """Decode a nested message, in place if the value is a Segment from an enclosing message"""
    if isinstance(value, Segment):
        return parse_message(value.buffer, value.offset, len(value))
    return parse_message(value)
