# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Message format classification and stream framing.

A buffer delivered by the transport holds a CoT XML event, a TAK protobuf
message in Stream or Mesh framing, or an OMNI protobuf message. The format
is recognized using only the first bytes of the buffer:

  * XML starts (after any whitespace) with '<?xml' or '<event'
  * TAK starts with the 0xBF magic byte followed by a varint. If the varint
    is followed by another magic byte the message uses Mesh framing and the
    varint is the protocol version, otherwise it uses Stream framing and the
    varint is the payload length
  * OMNI starts with one of the tags a BaseEvent usually starts with

Stream framing is the only one that delimits its messages. The others rely
on the transport to deliver exactly one message per buffer.

"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final, Self

from takwire import cot
from takwire.wire import OverflowDecodeError, TruncatedError, WireData, decode_varint

__all__ = (  # noqa: RUF022
    'TAK_MAGIC',
    'OMNI_LEADING_TAGS',

    'MessageFormat',
    'Frame',
    'NeedMoreData',
    'Malformed',
    'Unsupported',

    'classify',
    'StreamBuffer',
)


log = logging.getLogger(__name__)


TAK_MAGIC: Final = 0xBF

# entity id (varint or string), origin, time of validity and their neighbours
OMNI_LEADING_TAGS: Final = frozenset({0x08, 0x0A, 0x10, 0x12, 0x1A, 0x22, 0x2A, 0x32})

UNSUPPORTED_HEAD_SIZE: Final = 16


class MessageFormat(StrEnum):
    XML = 'xml'
    TAK_STREAM = 'tak-stream'
    TAK_MESH = 'tak-mesh'
    OMNI = 'omni'


@dataclass(frozen=True, slots=True)
class Frame:
    """
    A recognized message.

    The payload is located at payload_offset in buffer and has payload_length
    bytes. For the XML and OMNI formats it is the whole message. Consumed is
    the number of bytes from the start of the buffer that belong to this
    message, any bytes after them belong to the next one.
    """

    format: MessageFormat
    buffer: WireData = field(repr=False, compare=False)
    payload_offset: int
    payload_length: int
    version: int
    consumed: int

    @property
    def payload(self) -> bytes:
        return bytes(self.buffer[self.payload_offset:self.payload_offset + self.payload_length])


@dataclass(frozen=True, slots=True)
class NeedMoreData:
    """The buffer holds an incomplete Stream frame and needs this many more bytes"""

    needed: int


@dataclass(frozen=True, slots=True)
class Malformed:
    """The message is structurally invalid"""

    reason: str
    offset: int | None = None
    operation: str | None = None
    format: MessageFormat | None = None
    record: object = None


@dataclass(frozen=True, slots=True)
class Unsupported:
    """
    The buffer does not hold a message in any of the known formats.

    This is also used for messages in a known format that use protobuf
    features which are not supported (the deprecated groups), in which case
    format and record hold the message format and its partial decoding.
    """

    reason: str
    head: bytes = b''
    format: MessageFormat | None = None
    record: object = None


type Classification = Frame | NeedMoreData | Malformed | Unsupported


def classify(buffer: WireData, *, stream: bool = False) -> Classification:
    """
    Determine the format of the message at the start of buffer.

    When stream is true the buffer holds data received from a byte stream,
    so an incomplete message may be completed by more data, in which case a
    NeedMoreData request is returned instead of reporting it as malformed.
    """

    buffer_length = len(buffer)
    if buffer_length == 0:
        if stream:
            return NeedMoreData(1)
        return Unsupported('Empty buffer')

    if cot.is_xml(buffer):
        return Frame(MessageFormat.XML, buffer, payload_offset=0, payload_length=buffer_length, version=0, consumed=buffer_length)

    if buffer[0] == TAK_MAGIC:
        return _classify_tak(buffer, stream)

    if buffer[0] in OMNI_LEADING_TAGS:
        return Frame(MessageFormat.OMNI, buffer, payload_offset=0, payload_length=buffer_length, version=0, consumed=buffer_length)

    head = bytes(buffer[:UNSUPPORTED_HEAD_SIZE])
    log.debug('Unrecognized message format: %s', head.hex(' '))
    return Unsupported(f'Unrecognized message format (first byte 0x{buffer[0]:02x})', head)


def _classify_tak(buffer: WireData, stream: bool) -> Classification:
    buffer_length = len(buffer)
    try:
        value, size = decode_varint(buffer, 1)
    except TruncatedError as exc:
        if stream:
            log.debug('Incomplete TAK header, requesting one more byte')
            return NeedMoreData(1)
        return Malformed('Truncated varint after the TAK magic byte', offset=exc.offset, operation='varint')
    except OverflowDecodeError as exc:
        return Malformed('Varint after the TAK magic byte is too long', offset=exc.offset, operation='varint')

    header_length = 1 + size
    if header_length < buffer_length and buffer[header_length] == TAK_MAGIC:
        payload_offset = header_length + 1
        return Frame(MessageFormat.TAK_MESH, buffer, payload_offset=payload_offset, payload_length=buffer_length - payload_offset, version=value, consumed=buffer_length)

    frame_length = header_length + value
    if buffer_length < frame_length:
        if stream:
            log.debug('Incomplete TAK stream frame: have %d of %d bytes', buffer_length, frame_length)
            return NeedMoreData(frame_length - buffer_length)
        return Malformed(f'TAK stream frame needs {frame_length} bytes, but only {buffer_length} are available', offset=header_length, operation='length-delimited', format=MessageFormat.TAK_STREAM)
    return Frame(MessageFormat.TAK_STREAM, buffer, payload_offset=header_length, payload_length=value, version=1, consumed=frame_length)


class StreamBuffer(Iterator[Frame | Malformed | Unsupported]):
    """
    Split the data received from a byte stream into messages.

    Iterating over the buffer produces the complete messages it holds, in
    order, removing them from the buffer. Iteration stops when the buffer is
    empty or when the message at its start is incomplete, in which case the
    needed attribute holds the number of bytes still missing. Data that does
    not hold a usable message cannot be resynchronized, so it is returned as
    the Malformed or Unsupported outcome and the whole buffer is discarded.
    """

    def __init__(self, initial_data: bytes | bytearray = b'', /) -> None:
        self._buffer = bytearray(initial_data)
        self.needed = 0

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({bytes(self._buffer)!r})'

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> Frame | Malformed | Unsupported:
        if not self._buffer:
            self.needed = 0
            raise StopIteration
        outcome = classify(self._buffer, stream=True)
        match outcome:
            case NeedMoreData(needed):
                self.needed = needed
                raise StopIteration
            case Frame(consumed=consumed):
                data = bytes(self._buffer[:consumed])
                self._buffer[0:consumed] = b''
                self.needed = 0
                return Frame(outcome.format, data, outcome.payload_offset, outcome.payload_length, outcome.version, consumed)
            case _:
                log.debug('Discarding %d bytes of unusable stream data', len(self._buffer))
                self._buffer.clear()
                self.needed = 0
                return outcome

    def clear(self) -> None:
        self._buffer.clear()
        self.needed = 0

    def write(self, data: bytes | bytearray) -> None:
        self._buffer.extend(data)
