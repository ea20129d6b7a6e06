# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


__all__ = 'DecodeError', 'TruncatedError', 'BoundaryError', 'OverflowDecodeError', 'InvalidTagError', 'UnsupportedTagError'  # noqa: RUF022


class DecodeError(ValueError):
    """
    Raised when the wire data cannot be decoded.

    The offset is the position in the buffer where decoding gave up and the
    operation names what was being decoded at the time (a tag, a varint, a
    fixed width value, a length delimited value).

    """

    def __init__(self, message: str, /, *, offset: int, operation: str) -> None:
        super().__init__(message)
        self.offset = offset
        self.operation = operation

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self.args[0]!r}, offset={self.offset!r}, operation={self.operation!r})'


class TruncatedError(DecodeError):
    """Raised when the buffer ends before the value being decoded is complete."""


class BoundaryError(DecodeError):
    """Raised when a value extends past the boundary of its enclosing message, while still fitting in the buffer."""


class OverflowDecodeError(DecodeError):
    """Raised when a varint needs more than 10 bytes, which is more than a 64-bit value can take."""


class InvalidTagError(DecodeError):
    """Raised when a tag uses one of the unassigned wire types (6 and 7) or a field number that is out of range."""


class UnsupportedTagError(DecodeError):
    """
    Raised when a tag uses field number 0 or one of the deprecated group wire types (3 and 4).

    Such tags are a protobuf feature that is not supported, rather than a sign
    of corrupted data.

    """
