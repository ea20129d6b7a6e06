# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import struct

import pytest

from takwire.wire import (
    BoundaryError,
    FieldMap,
    InvalidTagError,
    Segment,
    StrayValue,
    TruncatedError,
    UnsupportedTagError,
    WireType,
    encode_length_delimited,
    encode_tag,
    encode_varint,
    parse_message,
    parse_nested,
)


def varint_field(number: int, value: int) -> bytes:
    return encode_tag(number, WireType.VARINT) + encode_varint(value)


def bytes_field(number: int, value: bytes) -> bytes:
    return encode_tag(number, WireType.LENGTH_DELIMITED) + encode_length_delimited(value)


class TestParseMessage:

    def test_empty(self) -> None:
        field_map = parse_message(b'')
        assert len(field_map) == 0
        assert field_map.complete
        assert field_map.length == 0

    def test_all_wire_types(self) -> None:
        data = (
            varint_field(1, 150)
            + encode_tag(2, WireType.FIXED64) + struct.pack('<d', 1.5)
            + bytes_field(3, b'text')
            + encode_tag(4, WireType.FIXED32) + struct.pack('<I', 7)
        )
        field_map = parse_message(data)
        assert field_map.complete
        assert field_map.length == len(data)
        assert list(field_map) == [1, 2, 3, 4]
        assert field_map[1].wire_type is WireType.VARINT
        assert field_map[1].values == [150]
        assert field_map[2].wire_type is WireType.FIXED64
        assert field_map[2].first == struct.pack('<d', 1.5)
        assert field_map[3].first == b'text'
        assert field_map[4].first == b'\x07\x00\x00\x00'

    def test_repeated_fields_keep_wire_order(self) -> None:
        data = bytes_field(5, b'first') + varint_field(1, 1) + bytes_field(5, b'second') + bytes_field(5, b'third')
        field_map = parse_message(data)
        assert field_map[5].values == [b'first', b'second', b'third']
        assert field_map[5].first == b'first'
        assert field_map[5].last == b'third'
        assert field_map[1].values == [1]

    def test_unknown_fields_are_kept(self) -> None:
        field_map = parse_message(varint_field(1000, 3) + bytes_field(536870911, b''))
        assert field_map[1000].values == [3]
        assert field_map[536870911].values == [b'']

    def test_mismatched_wire_types(self) -> None:
        data = varint_field(1, 5) + bytes_field(1, b'oops') + varint_field(1, 6)
        field_map = parse_message(data)
        assert field_map.complete
        assert field_map[1].wire_type is WireType.VARINT
        assert field_map[1].values == [5, 6]
        assert field_map.stray == (StrayValue(1, WireType.LENGTH_DELIMITED, b'oops'),)
        assert field_map.values_of(1, WireType.VARINT) == [5, 6]
        assert field_map.values_of(1, WireType.LENGTH_DELIMITED) == []
        assert field_map.values_of(2, WireType.VARINT) == []

    def test_region(self) -> None:
        message = varint_field(1, 42) + bytes_field(2, b'abc')
        data = b'\xbf\x00' + message + b'\xff\xff'
        field_map = parse_message(data, 2, len(message))
        assert field_map.complete
        assert field_map[1].values == [42]
        assert field_map[2].values == [b'abc']

        with pytest.raises(ValueError, match='The message region .* is outside the buffer'):
            parse_message(data, 2, len(data))
        with pytest.raises(ValueError, match='The message region .* is outside the buffer'):
            parse_message(data, -1)

    def test_truncated_value_keeps_partial_result(self) -> None:
        data = varint_field(1, 42) + encode_tag(2, WireType.LENGTH_DELIMITED) + b'\x0aabc'
        field_map = parse_message(data)
        assert not field_map.complete
        assert isinstance(field_map.error, TruncatedError)
        assert field_map.error.offset == 3
        assert field_map[1].values == [42]
        assert 2 not in field_map
        assert field_map.length == 2

    def test_truncated_varint(self) -> None:
        field_map = parse_message(varint_field(1, 1) + b'\x10\x80')
        assert isinstance(field_map.error, TruncatedError)
        assert field_map.error.operation == 'varint'
        assert field_map.error.offset == 4
        assert field_map[1].values == [1]

    def test_truncated_tag(self) -> None:
        field_map = parse_message(b'\x80')
        assert isinstance(field_map.error, TruncatedError)
        assert field_map.error.operation == 'tag'
        assert len(field_map) == 0

    def test_value_crossing_the_message_boundary(self) -> None:
        inner = varint_field(1, 42) + bytes_field(2, b'abcdef')
        data = inner + b'\x00' * 4
        # the message is declared to end in the middle of field 2
        field_map = parse_message(data, 0, len(inner) - 3)
        assert isinstance(field_map.error, BoundaryError)
        assert field_map.error.offset == 3
        assert field_map[1].values == [42]
        assert 2 not in field_map

    def test_unsupported_tag(self) -> None:
        field_map = parse_message(varint_field(1, 1) + b'\x0b\x00')
        assert isinstance(field_map.error, UnsupportedTagError)
        assert field_map.error.offset == 2
        assert field_map[1].values == [1]

    def test_field_map(self) -> None:
        field_map = parse_message(varint_field(3, 1))
        assert isinstance(field_map, FieldMap)
        assert 3 in field_map
        assert field_map.get(4) is None
        assert 'error=None' in repr(field_map)

    def test_invalid_tag(self) -> None:
        field_map = parse_message(varint_field(1, 1) + b'\x0e\x00')
        assert isinstance(field_map.error, InvalidTagError)
        assert not isinstance(field_map.error, UnsupportedTagError)
        assert field_map.error.offset == 2

    def test_segments(self) -> None:
        data = varint_field(1, 1) + bytes_field(2, b'abc') + bytes_field(2, b'')
        field_map = parse_message(data)
        first, second = field_map[2].values
        assert isinstance(first, Segment)
        assert first == b'abc'
        assert first.buffer is data
        assert first.offset == 4
        assert second == b''
        assert second.offset == 9  # type: ignore[union-attr]
        assert parse_message(varint_field(1, 1))[1].values == [1]


class TestParseNested:

    def test_in_place(self) -> None:
        inner = varint_field(1, 5) + bytes_field(2, b'xy')
        data = varint_field(9, 1) + bytes_field(3, inner)
        segment = parse_message(data)[3].first
        assert isinstance(segment, Segment)
        field_map = parse_nested(segment)
        assert field_map.complete
        assert field_map[1].values == [5]
        assert field_map[2].first.offset == 8  # type: ignore[union-attr]
        assert field_map.length == len(inner)

    def test_plain_bytes(self) -> None:
        field_map = parse_nested(varint_field(1, 5))
        assert field_map[1].values == [5]

    def test_value_crossing_the_nested_boundary(self) -> None:
        # the string in the nested message claims 4 bytes, but only 2 of them
        # belong to the nested message, the others belong to field 4
        data = bytes_field(3, b'\x12\x04xy') + varint_field(4, 1)
        field_map = parse_nested(parse_message(data)[3].first)  # type: ignore[arg-type]
        assert isinstance(field_map.error, BoundaryError)
        assert field_map.error.offset == 3
        assert field_map.error.operation == 'length-delimited'

        # the same nested message, detached from its enclosing one, runs out of data
        field_map = parse_nested(b'\x12\x04xy')
        assert isinstance(field_map.error, TruncatedError)
        assert field_map.error.offset == 1
