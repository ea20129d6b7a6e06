# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from .elements import Element, ListElement, OneofElement, OneofRecordElement, Record
from .omni import BaseEvent, event_type_name
from .tak import CotEvent, TakMessage, cot_event_from_xml

__all__ = (  # noqa: RUF022
    'Record',
    'Element',
    'ListElement',
    'OneofElement',
    'OneofRecordElement',

    'TakMessage',
    'CotEvent',
    'cot_event_from_xml',

    'BaseEvent',
    'event_type_name',
)
