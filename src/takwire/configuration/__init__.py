# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Port routing configuration.

Maps the transport ports to the protocol family that is expected on them.
The configuration is kept in an XML document:

    <takwire xmlns="urn:takwire:config">
      <tak>
        <port>4242</port>
        <port>8087</port>
      </tak>
      <omni>
        <port>8089</port>
      </omni>
    </takwire>

A missing section keeps the default ports for its protocol, while a section
without any port disables that protocol.

"""

from collections.abc import Iterable
from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import ClassVar, Final

from lxml import etree

__all__ = 'Protocol', 'Configuration', 'RelaxNGValidator'  # noqa: RUF022


type ETreeElement = etree._Element  # noqa: SLF001


NAMESPACE: Final = 'urn:takwire:config'


class Protocol(StrEnum):
    TAK = 'tak'
    OMNI = 'omni'


class RelaxNGValidator:
    schema_directory = Path(__file__).parent

    def __init__(self, schema_file: str) -> None:
        self.schema_path = self.schema_directory / schema_file
        self.schema = etree.RelaxNG(file=self.schema_path)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RelaxNGValidator):
            return self.schema_path == other.schema_path
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.schema_path)

    def validate(self, element: ETreeElement) -> bool:
        return self.schema.validate(element)

    def error_message(self) -> str:
        return str(self.schema.error_log.last_error)


def _check_ports(ports: Iterable[int], protocol: Protocol) -> tuple[int, ...]:
    ports = tuple(ports)
    for port in ports:
        if not isinstance(port, int) or isinstance(port, bool):
            raise TypeError(f'{protocol.name} port must be an integer, got {port.__class__.__name__}')
        if not 1 <= port <= 65535:
            raise ValueError(f'Invalid {protocol.name} port: {port}')
    return tuple(dict.fromkeys(ports))  # remove duplicates, keeping the order


class Configuration:
    default_tak_ports: ClassVar[tuple[int, ...]] = (4242, 6969, 7171, 8087, 17012)
    default_omni_ports: ClassVar[tuple[int, ...]] = (8089,)

    validator: ClassVar[RelaxNGValidator | None] = None

    def __init__(self, *, tak_ports: Iterable[int] | None = None, omni_ports: Iterable[int] | None = None) -> None:
        self.tak_ports = _check_ports(self.default_tak_ports if tak_ports is None else tak_ports, Protocol.TAK)
        self.omni_ports = _check_ports(self.default_omni_ports if omni_ports is None else omni_ports, Protocol.OMNI)
        if overlap := set(self.tak_ports) & set(self.omni_ports):
            raise ValueError(f'Ports cannot be used by both TAK and OMNI: {', '.join(map(str, sorted(overlap)))}')

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}(tak_ports={self.tak_ports!r}, omni_ports={self.omni_ports!r})'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Configuration):
            return self.tak_ports == other.tak_ports and self.omni_ports == other.omni_ports
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.tak_ports, self.omni_ports))

    def protocol_for_port(self, port: int) -> Protocol | None:
        """Return the protocol expected on the given port, or None if the port is not used by either protocol"""
        if port in self.tak_ports:
            return Protocol.TAK
        if port in self.omni_ports:
            return Protocol.OMNI
        return None

    @classmethod
    def _get_validator(cls) -> RelaxNGValidator:
        if cls.validator is None:
            cls.validator = RelaxNGValidator('takwire.rng')
        return cls.validator

    @classmethod
    def from_xml(cls, element: ETreeElement) -> 'Configuration':
        validator = cls._get_validator()
        if not validator.validate(element):
            raise ValueError(f'Invalid configuration: {validator.error_message()}')
        ports: dict[str, tuple[int, ...] | None] = {'tak': None, 'omni': None}
        for section in element.iterchildren(f'{{{NAMESPACE}}}tak', f'{{{NAMESPACE}}}omni'):
            name = etree.QName(section).localname
            ports[name] = tuple(int(port.text) for port in section.iterchildren(f'{{{NAMESPACE}}}port'))
        return cls(tak_ports=ports['tak'], omni_ports=ports['omni'])

    @classmethod
    def from_string(cls, data: str | bytes) -> 'Configuration':
        if isinstance(data, str):
            data = data.encode()
        parser = etree.XMLParser(remove_blank_text=True, remove_comments=True, resolve_entities=False, no_network=True)
        try:
            element = etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise ValueError(f'Cannot parse configuration: {exc}') from exc
        return cls.from_xml(element)

    @classmethod
    def from_file(cls, path: str | PathLike[str]) -> 'Configuration':
        return cls.from_string(Path(path).read_bytes())

    def to_xml(self) -> ETreeElement:
        root = etree.Element(f'{{{NAMESPACE}}}takwire', nsmap={None: NAMESPACE})
        for protocol, ports in ((Protocol.TAK, self.tak_ports), (Protocol.OMNI, self.omni_ports)):
            section = etree.SubElement(root, f'{{{NAMESPACE}}}{protocol}')
            for port in ports:
                etree.SubElement(section, f'{{{NAMESPACE}}}port').text = str(port)
        return root

    def to_string(self) -> str:
        return etree.tostring(self.to_xml(), encoding='unicode', pretty_print=True)
