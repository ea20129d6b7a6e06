# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from takwire.cot import as_text, get_attr, get_element, get_element_with_attrs, is_xml


EVENT = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<event version="2.0" uid="ANDROID-1234" type="a-f-G-U-C" how="m-g" time="2024-01-15T10:30:00Z" start="2024-01-15T10:30:00Z" stale="2024-01-15T10:35:00Z">'
    '<point lat="37.7749" lon="-122.4194" hae="10.5" ce="9999999.0" le="9999999.0"/>'
    '<detail>'
    '<contact callsign="ALPHA-1" endpoint="192.168.1.10:4242:tcp"/>'
    '<__group name="Cyan" role="Team Member"/>'
    '<status battery="85"/>'
    '</detail>'
    '</event>'
)


class TestXMLExtraction:

    def test_is_xml(self) -> None:
        assert is_xml(EVENT)
        assert is_xml(EVENT.encode())
        assert is_xml(b'<event uid="x"/>')
        assert is_xml(bytearray(b'\n  <?xml version="1.0"?>'))
        assert is_xml(memoryview(b'\t<event>'))
        assert not is_xml(b'<events/>'[:3])
        assert not is_xml(b'\xbf\x01<event>')
        assert not is_xml(b'')
        assert not is_xml('<detail/>')

    def test_as_text(self) -> None:
        assert as_text('text') == 'text'
        assert as_text(b'caf\xc3\xa9') == 'café'
        assert as_text(b'bad \xff byte') == 'bad � byte'

    def test_get_element_with_attrs(self) -> None:
        assert get_element_with_attrs(EVENT, 'point') == '<point lat="37.7749" lon="-122.4194" hae="10.5" ce="9999999.0" le="9999999.0"/>'
        assert get_element_with_attrs(EVENT, 'detail') == '<detail>'
        assert get_element_with_attrs(EVENT, 'track') is None
        # a tag name that is a prefix of another tag name does not match it
        assert get_element_with_attrs('<contacts a="1"/><contact b="2"/>', 'contact') == '<contact b="2"/>'
        # an opening tag without its closing bracket
        assert get_element_with_attrs('<point lat="1"', 'point') is None

    def test_get_attr(self) -> None:
        tag = get_element_with_attrs(EVENT, 'event')
        assert tag is not None
        assert get_attr(tag, 'uid') == 'ANDROID-1234'
        assert get_attr(tag, 'type') == 'a-f-G-U-C'
        assert get_attr(tag, 'version') == '2.0'
        assert get_attr(tag, 'access') is None

    def test_get_attr_requires_a_whole_name(self) -> None:
        tag = '<link parent_uid="parent" uid="child" relation="p-p"/>'
        assert get_attr(tag, 'uid') == 'child'
        assert get_attr('<link parent_uid="parent"/>', 'uid') is None

    def test_get_attr_values(self) -> None:
        assert get_attr("<contact callsign='BRAVO'/>", 'callsign') == 'BRAVO'
        assert get_attr('<contact callsign=""/>', 'callsign') == ''
        # values are returned verbatim
        assert get_attr('<remarks text="a &amp; b"/>', 'text') == 'a &amp; b'
        assert get_attr('<contact callsign="unterminated/>', 'callsign') is None
        assert get_attr('<contact callsign=BRAVO/>', 'callsign') is None

    def test_get_element(self) -> None:
        assert get_element(EVENT, 'detail') == (
            '<contact callsign="ALPHA-1" endpoint="192.168.1.10:4242:tcp"/>'
            '<__group name="Cyan" role="Team Member"/>'
            '<status battery="85"/>'
        )
        assert get_element('<remarks>Hello</remarks>', 'remarks') == 'Hello'
        assert get_element('<detail/>', 'detail') == ''
        assert get_element('<detail><contact/>', 'detail') is None
        assert get_element('<event/>', 'detail') is None
