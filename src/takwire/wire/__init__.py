# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .codec import (
    WireData,
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
from .exceptions import BoundaryError, DecodeError, InvalidTagError, OverflowDecodeError, TruncatedError, UnsupportedTagError
from .message import Field, FieldMap, Segment, StrayValue, parse_message, parse_nested

__all__ = (  # noqa: RUF022
    'WireData',
    'WireType',

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

    'Segment',
    'Field',
    'FieldMap',
    'StrayValue',
    'parse_message',
    'parse_nested',

    'DecodeError',
    'TruncatedError',
    'BoundaryError',
    'OverflowDecodeError',
    'InvalidTagError',
    'UnsupportedTagError',
)
