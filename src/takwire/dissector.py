# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
from dataclasses import dataclass

from takwire.framing import UNSUPPORTED_HEAD_SIZE, Frame, Malformed, MessageFormat, NeedMoreData, Unsupported, classify
from takwire.schema import BaseEvent, CotEvent, Record, TakMessage, cot_event_from_xml
from takwire.wire import UnsupportedTagError, WireData, parse_message

__all__ = 'Dissection', 'NeedMoreData', 'Malformed', 'Unsupported', 'dissect'  # noqa: RUF022


log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Dissection:
    """
    A decoded message.

    The record is a CotEvent for XML, a TakMessage for the TAK formats and a
    BaseEvent for OMNI. The warnings describe conditions that do not make the
    message invalid, but that the user should be made aware of.
    """

    format: MessageFormat
    record: CotEvent | TakMessage | BaseEvent
    version: int
    consumed: int
    warnings: tuple[str, ...] = ()


type Outcome = Dissection | NeedMoreData | Malformed | Unsupported


def dissect(buffer: WireData, *, stream: bool = False) -> Outcome:
    """
    Decode the message at the start of buffer.

    When stream is true, the buffer holds data received from a byte stream
    and an incomplete TAK stream frame results in a NeedMoreData request.
    Only the first consumed bytes of the buffer belong to the message, the
    rest must be dissected separately. Decoding problems are reported with
    the outcome, they never raise.
    """

    classification = classify(buffer, stream=stream)
    if not isinstance(classification, Frame):
        return classification

    frame = classification
    log.debug('Dissecting %s message (%d bytes)', frame.format, frame.consumed)

    match frame.format:
        case MessageFormat.XML:
            return Dissection(frame.format, cot_event_from_xml(frame.buffer), frame.version, frame.consumed)
        case MessageFormat.TAK_STREAM | MessageFormat.TAK_MESH:
            warnings = ['Empty TAK payload'] if frame.payload_length == 0 else []
            record = TakMessage.project(parse_message(frame.buffer, frame.payload_offset, frame.payload_length))
            return _outcome(frame, record, warnings)
        case MessageFormat.OMNI:
            warnings = []
            record = BaseEvent.project(parse_message(frame.buffer, frame.payload_offset, frame.payload_length))
            if record.event_name is None and record.unknown_fields:
                warnings.append(f'Unknown OMNI event type (fields {', '.join(map(str, record.unknown_fields))})')
            return _outcome(frame, record, warnings)
        case _:
            raise RuntimeError(f'Unhandled message format: {frame.format!r}')


def _outcome(frame: Frame, record: Record, warnings: list[str]) -> Dissection | Malformed | Unsupported:
    error = next(record.errors(), None)
    if isinstance(error, UnsupportedTagError):
        log.debug('Unsupported %s message: %s', frame.format, error)
        return Unsupported(str(error), bytes(frame.buffer[:UNSUPPORTED_HEAD_SIZE]), format=frame.format, record=record)
    if error is not None:
        log.debug('Malformed %s message: %s', frame.format, error)
        return Malformed(str(error), offset=error.offset, operation=error.operation, format=frame.format, record=record)
    return Dissection(frame.format, record, frame.version, frame.consumed, tuple(warnings))  # type: ignore[arg-type]
