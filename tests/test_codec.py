# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import struct

import pytest

from takwire.wire import (
    DecodeError,
    InvalidTagError,
    OverflowDecodeError,
    TruncatedError,
    UnsupportedTagError,
    WireType,
    decode_double,
    decode_fixed32,
    decode_fixed64,
    decode_float,
    decode_length_delimited,
    decode_tag,
    decode_value,
    decode_varint,
    decode_zigzag,
    encode_length_delimited,
    encode_tag,
    encode_varint,
    zigzag_decode,
    zigzag_encode,
)


class TestVarint:

    @pytest.mark.parametrize('value', [0, 1, 127, 128, 300, 16383, 16384, 2**32 - 1, 2**63, 2**64 - 1])
    def test_round_trip(self, value: int) -> None:
        data = encode_varint(value)
        assert decode_varint(data) == (value, len(data))

    def test_known_encodings(self) -> None:
        assert encode_varint(0) == b'\x00'
        assert encode_varint(1) == b'\x01'
        assert encode_varint(127) == b'\x7f'
        assert encode_varint(128) == b'\x80\x01'
        assert encode_varint(300) == b'\xac\x02'
        assert len(encode_varint(2**64 - 1)) == 10

    def test_offset(self) -> None:
        data = b'\xff\xac\x02\x05'
        assert decode_varint(data, 1) == (300, 2)
        assert decode_varint(data, 3) == (5, 1)
        assert decode_varint(memoryview(data), 1) == (300, 2)
        with pytest.raises(ValueError, match='The offset must be a non-negative integer'):
            decode_varint(data, -1)

    def test_truncated(self) -> None:
        with pytest.raises(TruncatedError) as exc_info:
            decode_varint(b'')
        assert exc_info.value.offset == 0
        assert exc_info.value.operation == 'varint'

        # the continuation bit is set on the last byte
        with pytest.raises(TruncatedError) as exc_info:
            decode_varint(b'\x80')
        assert exc_info.value.offset == 1

        with pytest.raises(TruncatedError):
            decode_varint(b'\x01', 1)

    def test_overflow(self) -> None:
        with pytest.raises(OverflowDecodeError, match='Varint is longer than 10 bytes'):
            decode_varint(b'\xff' * 10 + b'\x01')
        # a 10 byte varint is accepted and its value is truncated to 64 bits
        assert decode_varint(b'\xff' * 9 + b'\x7f') == (2**64 - 1, 10)

    def test_encode_out_of_range(self) -> None:
        with pytest.raises(ValueError, match='Value is out of range'):
            encode_varint(-1)
        with pytest.raises(ValueError, match='Value is out of range'):
            encode_varint(2**64)

    def test_errors_are_value_errors(self) -> None:
        with pytest.raises(ValueError):  # noqa: PT011
            decode_varint(b'\x80\x80')
        assert issubclass(TruncatedError, DecodeError)


class TestZigzag:

    def test_mapping(self) -> None:
        pairs = [(0, 0), (-1, 1), (1, 2), (-2, 3), (2, 4), (2**63 - 1, 2**64 - 2), (-2**63, 2**64 - 1)]
        for signed, unsigned in pairs:
            assert zigzag_encode(signed) == unsigned
            assert zigzag_decode(unsigned) == signed

    def test_decode(self) -> None:
        assert decode_zigzag(b'\x03') == (-2, 1)
        assert decode_zigzag(encode_varint(zigzag_encode(-300))) == (-300, 2)

    def test_out_of_range(self) -> None:
        with pytest.raises(ValueError, match='Value is out of range'):
            zigzag_encode(2**63)
        with pytest.raises(ValueError, match='Value is out of range'):
            zigzag_encode(-2**63 - 1)


class TestFixed:

    def test_integers(self) -> None:
        assert decode_fixed32(b'\x01\x00\x00\x00') == (1, 4)
        assert decode_fixed32(b'\xff\xff\xff\xff') == (2**32 - 1, 4)
        assert decode_fixed64(b'\x00\x01\x00\x00\x00\x00\x00\x00') == (256, 8)
        assert decode_fixed64(b'\x00' + struct.pack('<Q', 7), 1) == (7, 8)

    def test_floating_point(self) -> None:
        assert decode_double(struct.pack('<d', 37.7749)) == (37.7749, 8)
        assert decode_float(struct.pack('<f', 0.5)) == (0.5, 4)

    def test_truncated(self) -> None:
        with pytest.raises(TruncatedError, match='Insufficient data in buffer to extract a 32-bit value') as exc_info:
            decode_fixed32(b'\x00\x00\x00')
        assert exc_info.value.operation == 'fixed32'
        with pytest.raises(TruncatedError, match='Insufficient data in buffer to extract a 64-bit value'):
            decode_fixed64(b'\x00' * 7)
        with pytest.raises(TruncatedError):
            decode_double(b'\x00' * 8, 1)
        with pytest.raises(TruncatedError):
            decode_float(b'')


class TestTag:

    def test_encode(self) -> None:
        assert encode_tag(1, WireType.LENGTH_DELIMITED) == b'\x0a'
        assert encode_tag(2, WireType.LENGTH_DELIMITED) == b'\x12'
        assert encode_tag(1, WireType.VARINT) == b'\x08'
        assert encode_tag(100, WireType.LENGTH_DELIMITED) == b'\xa2\x06'
        with pytest.raises(ValueError, match='Field number is out of range'):
            encode_tag(0, WireType.VARINT)
        with pytest.raises(ValueError):  # noqa: PT011
            encode_tag(1, 3)

    def test_decode(self) -> None:
        assert decode_tag(b'\x12') == (2, WireType.LENGTH_DELIMITED, 1)
        assert decode_tag(b'\xa2\x06') == (100, WireType.LENGTH_DELIMITED, 2)
        assert decode_tag(b'\x00\x0d', 1) == (1, WireType.FIXED32, 1)
        assert decode_tag(b'\x09') == (1, WireType.FIXED64, 1)

    def test_unsupported(self) -> None:
        # field number 0
        with pytest.raises(UnsupportedTagError, match='Field number 0 is reserved'):
            decode_tag(b'\x02')
        # start group and end group
        with pytest.raises(UnsupportedTagError, match='Unsupported wire type 3'):
            decode_tag(b'\x0b')
        with pytest.raises(UnsupportedTagError, match='Unsupported wire type 4'):
            decode_tag(b'\x0c')

    def test_invalid(self) -> None:
        # unassigned wire types
        with pytest.raises(InvalidTagError, match='Invalid wire type 6 for field 1') as exc_info:
            decode_tag(b'\x0e')
        assert not isinstance(exc_info.value, UnsupportedTagError)
        assert exc_info.value.operation == 'tag'
        with pytest.raises(InvalidTagError, match='Invalid wire type 7 for field 1'):
            decode_tag(b'\x0f')
        with pytest.raises(InvalidTagError, match='Field number is out of range'):
            decode_tag(encode_varint(1 << 32))

    def test_truncated(self) -> None:
        with pytest.raises(TruncatedError) as exc_info:
            decode_tag(b'\x80')
        assert exc_info.value.operation == 'tag'


class TestLengthDelimited:

    def test_decode(self) -> None:
        assert decode_length_delimited(b'\x03abc') == (b'abc', 3, 4)
        assert decode_length_delimited(b'\x00') == (b'', 0, 1)
        assert decode_length_delimited(b'xx\x02hi', 2) == (b'hi', 2, 3)
        assert decode_length_delimited(encode_length_delimited(b'x' * 200)) == (b'x' * 200, 200, 202)

    def test_overrun(self) -> None:
        with pytest.raises(TruncatedError, match='Declared length 5 exceeds the available data') as exc_info:
            decode_length_delimited(b'\x05abc')
        assert exc_info.value.offset == 0
        assert exc_info.value.operation == 'length-delimited'

    def test_bad_length(self) -> None:
        with pytest.raises(TruncatedError) as exc_info:
            decode_length_delimited(b'\x80')
        assert exc_info.value.operation == 'length'
        with pytest.raises(OverflowDecodeError):
            decode_length_delimited(b'\xff' * 11)


class TestValue:

    def test_wire_types(self) -> None:
        assert decode_value(b'\x96\x01', 0, WireType.VARINT) == (150, 2)
        assert decode_value(b'\x01\x02\x03\x04\x05\x06\x07\x08', 0, WireType.FIXED64) == (b'\x01\x02\x03\x04\x05\x06\x07\x08', 8)
        assert decode_value(b'\x01\x02\x03\x04', 0, WireType.FIXED32) == (b'\x01\x02\x03\x04', 4)
        assert decode_value(b'\x02hi', 0, WireType.LENGTH_DELIMITED) == (b'hi', 3)

    def test_truncated(self) -> None:
        with pytest.raises(TruncatedError) as exc_info:
            decode_value(b'\x00\x00', 0, WireType.FIXED32)
        assert exc_info.value.operation == 'fixed32'
        with pytest.raises(TruncatedError) as exc_info:
            decode_value(b'\x00' * 4, 0, WireType.FIXED64)
        assert exc_info.value.operation == 'fixed64'
