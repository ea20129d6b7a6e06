# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
OMNI messages.

Every OMNI message is a BaseEvent, which carries the entity identity, the
origin and time of validity of the event and exactly one event payload out
of a oneof group. The payload is identified by its field number, using the
EVENT_TYPES table.

"""

from types import MappingProxyType
from typing import Final

from .datamodel import DoubleValueAdapter, ProtobufEnum, UInt64ValueAdapter
from .elements import Element, ListElement, OneofElement, OneofRecordElement, Record

__all__ = (  # noqa: RUF022
    # Common records

    'Timestamp',
    'EventOrigin',
    'TimeOfValidity',
    'Alias',
    'Geopoint',

    # Enums

    'SensorStatus',
    'EnvironmentCategory',
    'IdentityAffiliation',
    'MissionType',
    'PersonnelRecoveryType',
    'AlertCategory',
    'AlertState',
    'AlertType',

    # Events

    'TrackEvent',
    'CommunicationParameters',
    'PlayerEvent',
    'SensorEvent',
    'ShapeEvent',
    'ChatEvent',
    'MissionAssignmentEvent',
    'WeatherEvent',
    'AirfieldStatusEvent',
    'PersonnelRecoveryEvent',
    'EntityManagementEvent',
    'NetworkError',
    'NetworkManagementEvent',
    'NavigationVectorEvent',
    'ImageEvent',
    'AlertEvent',
    'FlightPathEvent',

    # The base event and its dispatch table

    'EVENT_TYPES',
    'event_type_name',
    'BaseEvent',
)


# Common records

class Timestamp(Record):
    seconds = Element(int, number=1)
    nanos = Element(int, number=2)


class EventOrigin(Record):
    source_uid = Element(str, number=1)
    source_network = Element(str, number=2)


class TimeOfValidity(Record):
    timestamp = Element(Timestamp, number=1)
    updated = Element(int, number=2)
    timeout = Element(int, number=3)


class Alias(Record):
    domain = Element(str, number=1)
    field = Element(str, number=2)
    network = Element(str, number=3)
    id = Element(str, number=4)


class Geopoint(Record):
    """A geographic position. Everything but the latitude and longitude is optional."""

    lat = Element(float, number=1)
    lon = Element(float, number=2)
    hae = Element(float, number=3, adapter=DoubleValueAdapter)
    ce = Element(float, number=4, adapter=DoubleValueAdapter)
    le = Element(float, number=5, adapter=DoubleValueAdapter)
    course = Element(float, number=6, adapter=DoubleValueAdapter)
    speed = Element(float, number=7, adapter=DoubleValueAdapter)


# Enums

class SensorStatus(ProtobufEnum):
    NO_STATEMENT = 0
    OPERATIONAL = 1
    DEGRADED = 2
    INOPERATIVE = 3


class EnvironmentCategory(ProtobufEnum):
    NO_STATEMENT = 0
    SURFACE = 1
    SUBSURFACE = 2
    AIR = 3
    SPACE = 4
    LAND_UNIT = 5
    LAND_INSTALLATION = 6


class IdentityAffiliation(ProtobufEnum):
    NO_STATEMENT_IA = 0
    PENDING = 1
    UNKNOWN = 2
    ASSUMED_FRIEND = 3
    FRIEND = 4
    NEUTRAL = 5
    SUSPECT = 6
    HOSTILE = 7


class MissionType(ProtobufEnum):
    NO_STATEMENT = 0
    SURVEILLANCE = 1
    AIR_COVER = 2
    ESCORT = 3
    ATTACK = 4
    COMBAT_AIR_PATROL = 5
    INTERCEPT = 6
    INVESTIGATE = 7
    TRACK = 8
    GO_TO = 9
    PROVIDE_FIRE_SUPPORT = 10
    SEARCH_AND_RESCUE = 11
    TANKER = 12
    COMMAND_AND_CONTROL = 13


class PersonnelRecoveryType(ProtobufEnum):
    NO_STATEMENT = 0
    AUTHENTICATE = 1
    ACKNOWLEDGE = 2
    REQUEST = 3
    INITIATE = 4
    TERMINATION = 5
    UPDATE = 6
    SITUATION_REPORT = 7


class AlertCategory(ProtobufEnum):
    UNKNOWN = 0
    CAT_1 = 1  # critical
    CAT_2 = 2  # major
    CAT_3 = 3  # routine
    CAT_4 = 4  # syntax error


class AlertState(ProtobufEnum):
    CLOSED = 0
    AWAITING_RESPONSE = 1
    ACTIVE = 2
    TIMED_OUT = 3
    INVALID_RESPONSE = 4


class AlertType(ProtobufEnum):
    NO_STATEMENT = 0
    OTHER = 1
    BAILOUT = 2
    MISSION = 3
    SYSTEM_RESOURCE = 4
    EMERGENCY_ACTIVATION = 5
    EMERGENCY_DEACTIVATION = 6
    DIFFERENCE_REPORT = 7
    INVALID_PARAMETER = 8
    THREAT = 9
    HANDOVER = 10
    GO_TO_VOICE = 11
    CORRELATION = 12


# Events

class TrackEvent(Record):
    location = Element(Geopoint, number=1)


class CommunicationParameters(Record):
    callsign = Element(str, number=1)


class PlayerEvent(Record):
    communication_parameters = Element(CommunicationParameters, number=1)


class SensorEvent(Record):
    location = Element(Geopoint, number=2)
    status = Element(SensorStatus, number=3)


class ShapeEvent(Record):
    shape_type = OneofElement({1: 'SinglePoint', 2: 'Ellipse', 3: 'Rectangle', 4: 'Polyline', 5: 'Polygon', 6: 'PolyArc', 7: 'RadArc'})
    environment = Element(EnvironmentCategory, number=8)
    identity = Element(IdentityAffiliation, number=9)


class ChatEvent(Record):
    message = Element(str, number=1)
    attachment = Element(str, number=2)
    source = Element(Alias, number=3)


class MissionAssignmentEvent(Record):
    mission_type = Element(MissionType, number=1)
    source = Element(Alias, number=2)
    addressee = Element(Alias, number=3)


class WeatherEvent(Record):
    category = Element(int, number=1)


class AirfieldStatusEvent(Record):
    icao = Element(str, number=1)
    status = Element(int, number=2)


class PersonnelRecoveryEvent(Record):
    type = Element(PersonnelRecoveryType, number=1)


class EntityManagementEvent(Record):
    action = OneofElement({1: 'Drop', 2: 'Link', 3: 'Unlink', 4: 'AliasUpdate'})


class NetworkError(Record):
    message = Element(str, number=2)


class NetworkManagementEvent(Record):
    type = OneofElement({1: 'Ping', 2: 'Terminate', 3: 'Error', 4: 'ServerDiscovery'})
    error = Element(NetworkError, number=3)


class NavigationVectorEvent(Record):
    course = Element(float, number=1, adapter=DoubleValueAdapter)
    speed = Element(float, number=2, adapter=DoubleValueAdapter)
    altitude = Element(float, number=3, adapter=DoubleValueAdapter)


class ImageEvent(Record):
    location = Element(Geopoint, number=2)


class AlertEvent(Record):
    message = Element(str, number=1)
    category = Element(AlertCategory, number=2)
    state = Element(AlertState, number=3)
    type = Element(AlertType, number=6)


class FlightPathEvent(Record):
    sequence = Element(int, number=1, adapter=UInt64ValueAdapter)
    total_points = Element(int, number=4, adapter=UInt64ValueAdapter)


# The base event

# field number -> (event type name, event record)
EVENT_TYPES: Final = MappingProxyType({
    12: ('Track', TrackEvent),
    13: ('Player', PlayerEvent),
    14: ('Sensor', SensorEvent),
    15: ('Shape', ShapeEvent),
    16: ('Chat', ChatEvent),
    17: ('MissionAssignment', MissionAssignmentEvent),
    20: ('Weather', WeatherEvent),
    22: ('AirfieldStatus', AirfieldStatusEvent),
    23: ('PersonnelRecovery', PersonnelRecoveryEvent),
    25: ('EntityManagement', EntityManagementEvent),
    26: ('NetworkManagement', NetworkManagementEvent),
    29: ('NavigationVector', NavigationVectorEvent),
    36: ('Image', ImageEvent),
    37: ('Alert', AlertEvent),
    42: ('FlightPath', FlightPathEvent),
})


def event_type_name(field_number: int) -> str:
    """Return the name of the event type carried in the given BaseEvent field, or 'Unknown'"""
    try:
        return EVENT_TYPES[field_number][0]
    except KeyError:
        return 'Unknown'


class BaseEvent(Record):
    entity_id = Element(int, number=1)
    origin = Element(EventOrigin, number=2)
    time_of_validity = Element(TimeOfValidity, number=4)
    aliases = ListElement(Alias, number=5)
    sequence_number = Element(int, number=9)
    event_name = OneofElement({number: name for number, (name, _) in EVENT_TYPES.items()})
    event = OneofRecordElement({number: record_type for number, (_, record_type) in EVENT_TYPES.items()})

    @property
    def event_type(self) -> str:
        """The name of the event type, which is 'Unknown' if no known event is present"""
        return self.event_name or 'Unknown'
