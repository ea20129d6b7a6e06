# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from enum import Enum, IntEnum
from inspect import Parameter, Signature
from types import NoneType, UnionType
from typing import ClassVar, Self, overload

from takwire.wire import DecodeError, FieldMap, WireData, WireType, parse_message, parse_nested
from takwire.wire.message import RawValue

from .datamodel import AdapterRegistry, EnumAdapter, ValueAdapter

__all__ = 'Record', 'Element', 'ListElement', 'OneofElement', 'OneofRecordElement'  # noqa: RUF022


class Record:  # noqa: PLW1641
    """
    A message schema.

    The fields are declared with element descriptors that name the field
    number they are read from. A record is either projected from the field
    map of a decoded message, in which case raw holds that field map, or it
    is built directly from keyword arguments.

    Decoding errors found while converting the values of the fields, such
    as a malformed wrapper message, are kept in value_errors. The walk errors
    of nested records are kept by the nested records themselves.
    """

    __signature__: ClassVar[Signature] = Signature()

    _fields_: ClassVar[dict[str, 'FieldDescriptor']] = {}
    _numbers_: ClassVar[frozenset[int]] = frozenset()

    raw: FieldMap | None
    value_errors: tuple[DecodeError, ...]

    def __init__(self, **kw: object) -> None:
        unexpected = set(kw) - set(self._fields_)
        if unexpected:
            raise TypeError(f'{self.__class__.__qualname__}() got an unexpected keyword argument {next(iter(unexpected))!r}')
        self.raw = None
        self.value_errors = ()
        for name, descriptor in self._fields_.items():
            setattr(self, name, kw.get(name, descriptor.default))

    def __init_subclass__(cls, **kw: object) -> None:
        super().__init_subclass__(**kw)
        cls._fields_ = cls._fields_ | {name: value for name, value in cls.__dict__.items() if isinstance(value, FieldDescriptor)}
        cls._numbers_ = frozenset(number for descriptor in cls._fields_.values() for number in descriptor.numbers)
        cls.__signature__ = Signature(parameters=[descriptor.signature_parameter for descriptor in cls._fields_.values()])

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({', '.join(f'{name}={_reprproxy(getattr(self, name))!r}' for name in self._fields_)})'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record):
            return self.__class__ is other.__class__ and all(getattr(self, name) == getattr(other, name) for name in self._fields_)
        return NotImplemented

    @classmethod
    def project(cls, field_map: FieldMap) -> Self:
        """Build the record by reading its fields out of the field map"""
        instance = super().__new__(cls)
        errors: list[DecodeError] = []
        instance.raw = field_map
        for name, descriptor in cls._fields_.items():
            instance.__dict__[name] = descriptor.project(field_map, errors)
        instance.value_errors = tuple(errors)
        return instance

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        return cls.project(parse_message(buffer))

    @property
    def unknown_fields(self) -> tuple[int, ...]:
        """The field numbers present on the wire that are not part of the schema"""
        if self.raw is None:
            return ()
        return tuple(number for number in self.raw if number not in self._numbers_)

    def children(self) -> Iterator['Record']:
        for name in self._fields_:
            match getattr(self, name):
                case Record() as record:
                    yield record
                case tuple() as items:
                    yield from (item for item in items if isinstance(item, Record))

    def errors(self) -> Iterator[DecodeError]:
        """Iterate over the decoding errors of this record and of all the records nested in it"""
        if self.raw is not None and self.raw.error is not None:
            yield self.raw.error
        yield from self.value_errors
        for child in self.children():
            yield from child.errors()


# Helpers

class _reprproxy:  # noqa: N801
    def __init__(self, value: object) -> None:
        self.value = value

    def __repr__(self) -> str:
        match self.value:
            case Enum() as value:
                return f'{value.__class__.__qualname__}.{value.name}'
            case UnionType() as value:
                return ' | '.join('None' if _type is NoneType else _type.__qualname__ for _type in value.__args__)
            case type() as value:
                return value.__qualname__
            case value:
                return repr(value)

    __str__ = __repr__


class MessageAdapter[R: Record]:
    wire_type: WireType = WireType.LENGTH_DELIMITED

    def __init__(self, record_type: type[R]) -> None:
        self.record_type = record_type

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self.record_type.__qualname__})'

    def from_wire(self, value: RawValue, /) -> R:
        if not isinstance(value, bytes):
            raise TypeError(f'Expected bytes, got {value.__class__.__name__}')
        return self.record_type.project(parse_nested(value))


def _select_adapter(element_type: type, adapter: ValueAdapter | None) -> ValueAdapter:
    if adapter is not None:
        return adapter
    if issubclass(element_type, Record):
        return MessageAdapter(element_type)
    if issubclass(element_type, IntEnum):
        return EnumAdapter(element_type)
    adapter = AdapterRegistry.get_adapter(element_type)
    if adapter is None:
        raise TypeError(f'No adapter is known for {element_type.__qualname__!r} and none was provided')
    return adapter


# Field descriptors

class FieldDescriptor(ABC):
    name: str | None
    default: object

    @property
    @abstractmethod
    def numbers(self) -> frozenset[int]: ...

    @property
    @abstractmethod
    def annotation(self) -> object: ...

    @abstractmethod
    def project(self, field_map: FieldMap, errors: list[DecodeError]) -> object: ...

    @property
    def signature_parameter(self) -> Parameter:
        assert self.name is not None  # noqa: S101 (used by type checkers)
        return Parameter(name=self.name, kind=Parameter.KEYWORD_ONLY, annotation=self.annotation, default=self.default)

    def __set_name__(self, owner: type[Record], name: str) -> None:
        if self.name is None:
            self.name = name
        elif name != self.name:
            raise TypeError(f'Cannot assign the same {self.__class__.__qualname__!r} to two different names: {self.name!r} and {name!r}')

    def __get__(self, instance: Record | None, owner: type[Record] | None = None) -> object:
        if instance is None:
            return self
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        try:
            return instance.__dict__[self.name]
        except KeyError as exc:
            raise AttributeError(f'Attribute {self.name!r} of object {instance.__class__.__qualname__!r} is not set') from exc

    def __set__(self, instance: Record, value: object) -> None:
        if self.name is None:
            raise TypeError(f'Cannot use {self.__class__.__qualname__!r} instance without calling __set_name__ on it.')
        instance.__dict__[self.name] = value

    def __delete__(self, instance: Record) -> None:
        raise AttributeError(f'Attribute {self.name!r} of {instance.__class__.__qualname__!r} object cannot be deleted')


class Element[T](FieldDescriptor):
    """
    A singular field.

    The value is taken from the first occurrence of the field on the wire.
    If the field is missing, or it was sent with a wire type that does not
    match the one expected by its adapter, or its value cannot be converted,
    the element is None. A value that is structurally malformed also adds
    its DecodeError to errors.
    """

    def __init__(self, element_type: type[T], /, *, number: int, adapter: ValueAdapter[T] | None = None) -> None:
        self.name = None
        self.type = element_type
        self.number = number
        self.default = None
        self.adapter = _select_adapter(element_type, adapter)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({_reprproxy(self.type)!r}, number={self.number!r}, adapter={self.adapter!r})'

    @overload
    def __get__(self, instance: None, owner: type[Record]) -> Self: ...

    @overload
    def __get__(self, instance: Record, owner: type[Record] | None = None) -> T | None: ...

    def __get__(self, instance: Record | None, owner: type[Record] | None = None) -> Self | T | None:
        return super().__get__(instance, owner)  # type: ignore[return-value]

    @property
    def numbers(self) -> frozenset[int]:
        return frozenset({self.number})

    @property
    def annotation(self) -> object:
        return self.type | None

    def project(self, field_map: FieldMap, errors: list[DecodeError]) -> T | None:
        values = field_map.values_of(self.number, self.adapter.wire_type)
        if not values:
            return None
        try:
            return self.adapter.from_wire(values[0])
        except DecodeError as exc:
            errors.append(exc)
            return None
        except ValueError:
            return None


class ListElement[T](FieldDescriptor):
    """A repeated field, holding the values that could be converted in wire order"""

    def __init__(self, item_type: type[T], /, *, number: int, adapter: ValueAdapter[T] | None = None) -> None:
        self.name = None
        self.item_type = item_type
        self.number = number
        self.default = ()
        self.adapter = _select_adapter(item_type, adapter)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({_reprproxy(self.item_type)!r}, number={self.number!r}, adapter={self.adapter!r})'

    @overload
    def __get__(self, instance: None, owner: type[Record]) -> Self: ...

    @overload
    def __get__(self, instance: Record, owner: type[Record] | None = None) -> tuple[T, ...]: ...

    def __get__(self, instance: Record | None, owner: type[Record] | None = None) -> Self | tuple[T, ...]:
        return super().__get__(instance, owner)  # type: ignore[return-value]

    def __set__(self, instance: Record, value: object) -> None:
        super().__set__(instance, tuple(value))  # type: ignore[call-overload]

    @property
    def numbers(self) -> frozenset[int]:
        return frozenset({self.number})

    @property
    def annotation(self) -> object:
        return tuple[self.item_type, ...]  # type: ignore[name-defined]

    def project(self, field_map: FieldMap, errors: list[DecodeError]) -> tuple[T, ...]:
        items = []
        for value in field_map.values_of(self.number, self.adapter.wire_type):
            try:
                items.append(self.adapter.from_wire(value))
            except DecodeError as exc:
                errors.append(exc)
            except ValueError:
                continue
        return tuple(items)


class OneofElement(FieldDescriptor):
    """
    The name of the selected member of a oneof group.

    The group members are given as a mapping from field number to name. The
    member that comes first in the field map is selected and if none of them
    is present the element is None.
    """

    def __init__(self, members: Mapping[int, str], /) -> None:
        self.name = None
        self.members = dict(members)
        self.default = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.members!r})'

    @overload
    def __get__(self, instance: None, owner: type[Record]) -> Self: ...

    @overload
    def __get__(self, instance: Record, owner: type[Record] | None = None) -> str | None: ...

    def __get__(self, instance: Record | None, owner: type[Record] | None = None) -> Self | str | None:
        return super().__get__(instance, owner)  # type: ignore[return-value]

    @property
    def numbers(self) -> frozenset[int]:
        return frozenset(self.members)

    @property
    def annotation(self) -> object:
        return str | None

    def selected_number(self, field_map: FieldMap) -> int | None:
        return next((number for number in field_map if number in self.members), None)

    def project(self, field_map: FieldMap, errors: list[DecodeError]) -> str | None:
        number = self.selected_number(field_map)
        return None if number is None else self.members[number]


class OneofRecordElement(FieldDescriptor):
    """
    The record of the selected member of a oneof group of messages.

    The group members are given as a mapping from field number to record
    type. The member that comes first in the field map is selected, and the
    element is None if none of them is present or if the selected member is
    not a length delimited value.
    """

    def __init__(self, members: Mapping[int, type[Record]], /) -> None:
        self.name = None
        self.members = dict(members)
        self.default = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({{{', '.join(f'{number}: {record_type.__qualname__}' for number, record_type in self.members.items())}}})'

    @overload
    def __get__(self, instance: None, owner: type[Record]) -> Self: ...

    @overload
    def __get__(self, instance: Record, owner: type[Record] | None = None) -> Record | None: ...

    def __get__(self, instance: Record | None, owner: type[Record] | None = None) -> Self | Record | None:
        return super().__get__(instance, owner)  # type: ignore[return-value]

    @property
    def numbers(self) -> frozenset[int]:
        return frozenset(self.members)

    @property
    def annotation(self) -> object:
        return Record | None

    def project(self, field_map: FieldMap, errors: list[DecodeError]) -> Record | None:
        number = next((number for number in field_map if number in self.members), None)
        if number is None:
            return None
        values = field_map.values_of(number, WireType.LENGTH_DELIMITED)
        if not values:
            return None
        return self.members[number].project(parse_nested(values[0]))  # type: ignore[arg-type]
