"""Class file parser — just enough of the JVM class format to read field constants.

The constant pool is read in a single forward pass. Long and Double entries
occupy two slots; the second slot holds no entry and is not addressable.
Fields, methods and class attributes are read so the cursor stays in sync,
but only ``ConstantValue`` attributes are interpreted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, TypeVar, Union

from jdowser.classfile.reader import ClassFileReader
from jdowser.exceptions import ClassFormatError

CLASS_FILE_MAGIC = 0xCAFEBABE

CONSTANT_UTF8 = 1
CONSTANT_INTEGER = 3
CONSTANT_FLOAT = 4
CONSTANT_LONG = 5
CONSTANT_DOUBLE = 6
CONSTANT_CLASS = 7
CONSTANT_STRING = 8
CONSTANT_FIELDREF = 9
CONSTANT_METHODREF = 10
CONSTANT_INTERFACE_METHODREF = 11
CONSTANT_NAME_AND_TYPE = 12
CONSTANT_METHOD_HANDLE = 15
CONSTANT_METHOD_TYPE = 16
CONSTANT_INVOKE_DYNAMIC = 18

CONSTANT_VALUE_ATTRIBUTE = "ConstantValue"


# ── Constant pool entries ────────────────────────────────────────────────


@dataclass(frozen=True)
class Utf8Entry:
    raw: bytes

    @property
    def value(self) -> str:
        return self.raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class IntegerEntry:
    raw: int


@dataclass(frozen=True)
class FloatEntry:
    raw: int


@dataclass(frozen=True)
class LongEntry:
    high: int
    low: int

    slots = 2


@dataclass(frozen=True)
class DoubleEntry:
    high: int
    low: int

    slots = 2


@dataclass(frozen=True)
class ClassEntry:
    name_index: int


@dataclass(frozen=True)
class StringEntry:
    string_index: int


@dataclass(frozen=True)
class FieldrefEntry:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class MethodrefEntry:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class InterfaceMethodrefEntry:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class NameAndTypeEntry:
    name_index: int
    descriptor_index: int


@dataclass(frozen=True)
class MethodHandleEntry:
    reference_kind: int
    reference_index: int


@dataclass(frozen=True)
class MethodTypeEntry:
    descriptor_index: int


@dataclass(frozen=True)
class InvokeDynamicEntry:
    bootstrap_method_attr_index: int
    name_and_type_index: int


ConstantPoolEntry = Union[
    Utf8Entry,
    IntegerEntry,
    FloatEntry,
    LongEntry,
    DoubleEntry,
    ClassEntry,
    StringEntry,
    FieldrefEntry,
    MethodrefEntry,
    InterfaceMethodrefEntry,
    NameAndTypeEntry,
    MethodHandleEntry,
    MethodTypeEntry,
    InvokeDynamicEntry,
]

# tag -> reader for that entry kind
_ENTRY_READERS: dict[int, Callable[[ClassFileReader], ConstantPoolEntry]] = {
    CONSTANT_UTF8: lambda r: Utf8Entry(r.read_bytes(r.read_u16())),
    CONSTANT_INTEGER: lambda r: IntegerEntry(r.read_u32()),
    CONSTANT_FLOAT: lambda r: FloatEntry(r.read_u32()),
    CONSTANT_LONG: lambda r: LongEntry(r.read_u32(), r.read_u32()),
    CONSTANT_DOUBLE: lambda r: DoubleEntry(r.read_u32(), r.read_u32()),
    CONSTANT_CLASS: lambda r: ClassEntry(r.read_u16()),
    CONSTANT_STRING: lambda r: StringEntry(r.read_u16()),
    CONSTANT_FIELDREF: lambda r: FieldrefEntry(r.read_u16(), r.read_u16()),
    CONSTANT_METHODREF: lambda r: MethodrefEntry(r.read_u16(), r.read_u16()),
    CONSTANT_INTERFACE_METHODREF: lambda r: InterfaceMethodrefEntry(r.read_u16(), r.read_u16()),
    CONSTANT_NAME_AND_TYPE: lambda r: NameAndTypeEntry(r.read_u16(), r.read_u16()),
    CONSTANT_METHOD_HANDLE: lambda r: MethodHandleEntry(r.read_u8(), r.read_u16()),
    CONSTANT_METHOD_TYPE: lambda r: MethodTypeEntry(r.read_u16()),
    CONSTANT_INVOKE_DYNAMIC: lambda r: InvokeDynamicEntry(r.read_u16(), r.read_u16()),
}

E = TypeVar("E")


class ConstantPool:
    """1-indexed constant pool. Slot 0 and the slot after a wide entry are empty."""

    def __init__(self, entries: list[ConstantPoolEntry | None]) -> None:
        self._entries = entries

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> ConstantPoolEntry:
        if not 0 < index < len(self._entries):
            raise ClassFormatError(f"constant pool index {index} out of range")
        entry = self._entries[index]
        if entry is None:
            raise ClassFormatError(f"constant pool index {index} is not addressable")
        return entry

    def get(self, index: int, kind: type[E]) -> E | None:
        """Entry at ``index`` if it exists and is of type ``kind``."""
        if not 0 < index < len(self._entries):
            return None
        entry = self._entries[index]
        return entry if isinstance(entry, kind) else None

    def utf8(self, index: int) -> str | None:
        entry = self.get(index, Utf8Entry)
        return entry.value if entry is not None else None

    def string(self, index: int) -> str | None:
        """Resolve a String entry to its UTF-8 text."""
        entry = self.get(index, StringEntry)
        if entry is None:
            return None
        return self.utf8(entry.string_index)


# ── Attributes, members, class ───────────────────────────────────────────


@dataclass(frozen=True)
class ConstantValueAttribute:
    value_index: int


@dataclass(frozen=True)
class RawAttribute:
    """Any attribute this parser does not interpret; its body is skipped."""

    name_index: int
    length: int


Attribute = Union[ConstantValueAttribute, RawAttribute]


@dataclass
class MemberInfo:
    """A field or method entry."""

    access_flags: int
    name_index: int
    descriptor_index: int
    attributes: list[Attribute] = field(default_factory=list)


@dataclass
class ClassFile:
    magic: int
    minor_version: int
    major_version: int
    constant_pool: ConstantPool
    access_flags: int = 0
    this_class: int = 0
    super_class: int = 0
    interfaces: list[int] = field(default_factory=list)
    fields: list[MemberInfo] = field(default_factory=list)
    methods: list[MemberInfo] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)


def parse_class_file(data: bytes) -> ClassFile:
    """Parse a complete class file from raw bytes."""
    return read_class_file(ClassFileReader(data))


def read_class_file(reader: ClassFileReader) -> ClassFile:
    """Parse a class file from ``reader``, leaving the cursor after the last attribute."""
    magic = reader.read_u32()
    if magic != CLASS_FILE_MAGIC:
        raise ClassFormatError(f"not a class file: bad magic 0x{magic:08x}")

    minor = reader.read_u16()
    major = reader.read_u16()
    cp = _read_constant_pool(reader)

    cf = ClassFile(magic=magic, minor_version=minor, major_version=major, constant_pool=cp)
    cf.access_flags = reader.read_u16()
    cf.this_class = reader.read_u16()
    cf.super_class = reader.read_u16()
    cf.interfaces = [reader.read_u16() for _ in range(reader.read_u16())]
    cf.fields = _read_members(reader, cp)
    cf.methods = _read_members(reader, cp)
    cf.attributes = _read_attributes(reader, cp)
    return cf


def _read_constant_pool(reader: ClassFileReader) -> ConstantPool:
    count = reader.read_u16()
    entries: list[ConstantPoolEntry | None] = [None] * max(count, 1)
    slot = 1
    while slot < count:
        tag = reader.read_u8()
        read_entry = _ENTRY_READERS.get(tag)
        if read_entry is None:
            raise ClassFormatError(f"invalid constant pool tag {tag} at slot {slot}")
        entry = read_entry(reader)
        entries[slot] = entry
        slot += getattr(entry, "slots", 1)
    return ConstantPool(entries)


def _read_members(reader: ClassFileReader, cp: ConstantPool) -> list[MemberInfo]:
    members = []
    for _ in range(reader.read_u16()):
        access_flags = reader.read_u16()
        name_index = reader.read_u16()
        descriptor_index = reader.read_u16()
        members.append(
            MemberInfo(access_flags, name_index, descriptor_index, _read_attributes(reader, cp))
        )
    return members


def _read_attributes(reader: ClassFileReader, cp: ConstantPool) -> list[Attribute]:
    return [_read_attribute(reader, cp) for _ in range(reader.read_u16())]


def _read_attribute(reader: ClassFileReader, cp: ConstantPool) -> Attribute:
    name_index = reader.read_u16()
    length = reader.read_u32()
    if cp.utf8(name_index) == CONSTANT_VALUE_ATTRIBUTE and length >= 2:
        attr = ConstantValueAttribute(reader.read_u16())
        reader.read_bytes(length - 2)
        return attr
    reader.read_bytes(length)
    return RawAttribute(name_index, length)
