# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
TAK protocol messages.

The TakMessage is the payload carried by both the Stream and the Mesh
framing. The same CotEvent record is also produced from CoT XML events, so
both encodings of an event can be handled the same way.

"""

import math
from datetime import UTC, datetime, timedelta

from takwire import cot

from .elements import Element, Record

__all__ = (  # noqa: RUF022
    'TakMessage',
    'TakControl',
    'CotEvent',
    'Detail',
    'Contact',
    'Group',
    'PrecisionLocation',
    'Status',
    'Takv',
    'Track',

    'cot_event_from_xml',
)


class TakControl(Record):
    min_proto_version = Element(int, number=1)
    max_proto_version = Element(int, number=2)
    contact_uid = Element(str, number=3)


class Contact(Record):
    endpoint = Element(str, number=1)
    callsign = Element(str, number=2)


class Group(Record):
    name = Element(str, number=1)
    role = Element(str, number=2)


class PrecisionLocation(Record):
    geopointsrc = Element(str, number=1)
    altsrc = Element(str, number=2)


class Status(Record):
    battery = Element(int, number=1)


class Takv(Record):
    device = Element(str, number=1)
    platform = Element(str, number=2)
    os = Element(str, number=3)
    version = Element(str, number=4)


class Track(Record):
    speed = Element(float, number=1)
    course = Element(float, number=2)


class Detail(Record):
    xml_detail = Element(str, number=1)
    contact = Element(Contact, number=2)
    group = Element(Group, number=3)
    precision_location = Element(PrecisionLocation, number=4)
    status = Element(Status, number=5)
    takv = Element(Takv, number=6)
    track = Element(Track, number=7)


class CotEvent(Record):
    """A CoT event. The times are in milliseconds since the UNIX epoch."""

    type = Element(str, number=1)
    access = Element(str, number=2)
    qos = Element(str, number=3)
    opex = Element(str, number=4)
    uid = Element(str, number=5)
    send_time = Element(int, number=6)
    start_time = Element(int, number=7)
    stale_time = Element(int, number=8)
    how = Element(str, number=9)
    lat = Element(float, number=10)
    lon = Element(float, number=11)
    hae = Element(float, number=12)
    ce = Element(float, number=13)
    le = Element(float, number=14)
    detail = Element(Detail, number=15)


class TakMessage(Record):
    control = Element(TakControl, number=1)
    event = Element(CotEvent, number=2)


# CoT XML

_epoch = datetime(1970, 1, 1, tzinfo=UTC)


def _timestamp(value: str | None) -> int | None:
    # ISO-8601 time to milliseconds since the epoch (times without a zone are UTC)
    if value is None:
        return None
    try:
        moment = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _epoch) // timedelta(milliseconds=1)


def _float(value: str | None) -> float | None:
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def _int(value: str | None) -> int | None:
    number = _float(value)
    if number is None or not math.isfinite(number):
        return None
    return int(number)


def cot_event_from_xml(data: cot.XMLText) -> CotEvent:
    """
    Build a CotEvent from a CoT XML event.

    Elements that are missing leave the corresponding fields (or detail
    records) unset and values that cannot be converted are None. The detail
    record is present whenever the event has a detail element and it keeps
    the raw content of that element in xml_detail.
    """

    text = cot.as_text(data)
    event = CotEvent()

    if (tag := cot.get_element_with_attrs(text, 'event')) is not None:
        event.type = cot.get_attr(tag, 'type')
        event.uid = cot.get_attr(tag, 'uid')
        event.how = cot.get_attr(tag, 'how')
        event.access = cot.get_attr(tag, 'access')
        event.qos = cot.get_attr(tag, 'qos')
        event.opex = cot.get_attr(tag, 'opex')
        event.send_time = _timestamp(cot.get_attr(tag, 'time'))
        event.start_time = _timestamp(cot.get_attr(tag, 'start'))
        event.stale_time = _timestamp(cot.get_attr(tag, 'stale'))

    if (tag := cot.get_element_with_attrs(text, 'point')) is not None:
        event.lat = _float(cot.get_attr(tag, 'lat'))
        event.lon = _float(cot.get_attr(tag, 'lon'))
        event.hae = _float(cot.get_attr(tag, 'hae'))
        event.ce = _float(cot.get_attr(tag, 'ce'))
        event.le = _float(cot.get_attr(tag, 'le'))

    xml_detail = cot.get_element(text, 'detail')
    if xml_detail is None:
        return event

    detail = Detail(xml_detail=xml_detail)
    if (tag := cot.get_element_with_attrs(xml_detail, 'contact')) is not None:
        detail.contact = Contact(endpoint=cot.get_attr(tag, 'endpoint'), callsign=cot.get_attr(tag, 'callsign'))
    if (tag := cot.get_element_with_attrs(xml_detail, '__group')) is not None:
        detail.group = Group(name=cot.get_attr(tag, 'name'), role=cot.get_attr(tag, 'role'))
    if (tag := cot.get_element_with_attrs(xml_detail, 'precisionlocation')) is not None:
        detail.precision_location = PrecisionLocation(geopointsrc=cot.get_attr(tag, 'geopointsrc'), altsrc=cot.get_attr(tag, 'altsrc'))
    if (tag := cot.get_element_with_attrs(xml_detail, 'status')) is not None:
        detail.status = Status(battery=_int(cot.get_attr(tag, 'battery')))
    if (tag := cot.get_element_with_attrs(xml_detail, 'takv')) is not None:
        detail.takv = Takv(device=cot.get_attr(tag, 'device'), platform=cot.get_attr(tag, 'platform'), os=cot.get_attr(tag, 'os'), version=cot.get_attr(tag, 'version'))
    if (tag := cot.get_element_with_attrs(xml_detail, 'track')) is not None:
        detail.track = Track(speed=_float(cot.get_attr(tag, 'speed')), course=_float(cot.get_attr(tag, 'course')))
    event.detail = detail

    return event
