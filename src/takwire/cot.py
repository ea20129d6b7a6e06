# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Extraction of values from Cursor on Target XML events.

Only a small and fixed vocabulary of elements and attributes is ever looked
at (event, point and a handful of detail children), so the document is not
parsed. The functions here locate substrings in the raw text instead, which
also works on truncated or otherwise invalid documents.

"""

from typing import Final

__all__ = 'as_text', 'is_xml', 'get_element_with_attrs', 'get_attr', 'get_element'  # noqa: RUF022


type XMLText = str | bytes | bytearray | memoryview

XML_PREFIXES: Final = ('<?xml', '<event')

_whitespace: Final = ' \t\r\n'


def as_text(data: XMLText) -> str:
    if isinstance(data, str):
        return data
    return bytes(data).decode('utf-8', errors='replace')


def _find_opening_tag(text: str, tag: str) -> tuple[int, int] | None:
    # Return the start and end (inclusive, the position of '>') of the first <tag ...> opening tag
    pattern = f'<{tag}'
    start = text.find(pattern)
    while start != -1:
        after = start + len(pattern)
        if after < len(text) and (text[after] in _whitespace or text[after] in '>/'):
            end = text.find('>', after)
            return None if end == -1 else (start, end)
        start = text.find(pattern, start + 1)
    return None


def is_xml(data: XMLText) -> bool:
    """Check if the data starts (after any leading whitespace) with an XML declaration or an event element"""
    if isinstance(data, str):
        return data.lstrip(_whitespace).startswith(XML_PREFIXES)
    return bytes(data).lstrip(_whitespace.encode()).startswith(tuple(prefix.encode() for prefix in XML_PREFIXES))


def get_element_with_attrs(data: XMLText, tag: str) -> str | None:
    """Return the raw opening tag (including its attributes) of the first tag element, or None if there is none"""
    text = as_text(data)
    location = _find_opening_tag(text, tag)
    if location is None:
        return None
    start, end = location
    return text[start:end + 1]


def get_attr(opening_tag: str, name: str) -> str | None:
    """
    Return the value of the named attribute from an opening tag.

    The value is returned verbatim, as found between the quotes, without
    unescaping entities or converting it in any way.
    """
    prefix = f'{name}='
    index = opening_tag.find(prefix)
    while index != -1:
        value_start = index + len(prefix)
        if index > 0 and opening_tag[index - 1] in _whitespace and value_start < len(opening_tag) and opening_tag[value_start] in '"\'':
            quote = opening_tag[value_start]
            value_end = opening_tag.find(quote, value_start + 1)
            return None if value_end == -1 else opening_tag[value_start + 1:value_end]
        index = opening_tag.find(prefix, index + 1)
    return None


def get_element(data: XMLText, tag: str) -> str | None:
    """
    Return the raw content of the first tag element, or None if there is none.

    The content extends to the first closing tag with the same name, without
    considering nesting, so it only works for elements that cannot contain
    themselves. A self closing element has an empty content.
    """
    text = as_text(data)
    location = _find_opening_tag(text, tag)
    if location is None:
        return None
    _, end = location
    if text[end - 1] == '/':
        return ''
    close = text.find(f'</{tag}>', end + 1)
    if close == -1:
        return None
    return text[end + 1:close]
