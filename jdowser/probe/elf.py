"""Locate a named section in an ELF binary.

Only the file header and the section header table are read; nothing else
of the format is interpreted.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

ELF_MAGIC = b"\x7fELF"

_ELFCLASS32 = 1
_ELFCLASS64 = 2
_ELFDATA2LSB = 1
_ELFDATA2MSB = 2
_SHT_NOBITS = 8

# (file header after e_ident, section header) per ELF class
_LAYOUTS: dict[int, tuple[str, str]] = {
    _ELFCLASS32: ("HHIIIIIHHHHHH", "IIIIIIIIII"),
    _ELFCLASS64: ("HHIQQQIHHHHHH", "IIQQQQIIQQ"),
}


@dataclass(frozen=True)
class Section:
    name: str
    offset: int
    size: int


def find_section(path: str, name: str) -> Section | None:
    """Return the file range of section ``name``, or None if ``path`` is not
    an ELF file, is malformed, or has no such section with file contents.

    Raises ``OSError`` if the file cannot be read.
    """
    with open(path, "rb") as f:
        try:
            return _find_section(f, name)
        except struct.error:
            return None


def _find_section(f: BinaryIO, name: str) -> Section | None:
    ident = f.read(16)
    if len(ident) < 16 or ident[:4] != ELF_MAGIC:
        return None
    layout = _LAYOUTS.get(ident[4])
    if layout is None or ident[5] not in (_ELFDATA2LSB, _ELFDATA2MSB):
        return None
    order = "<" if ident[5] == _ELFDATA2LSB else ">"
    header = struct.Struct(order + layout[0])
    section = struct.Struct(order + layout[1])

    (_, _, _, _, _, shoff, _, _, _, _, shentsize, shnum, shstrndx) = header.unpack(
        f.read(header.size)
    )
    if shoff == 0 or shnum == 0 or shstrndx >= shnum or shentsize < section.size:
        return None

    headers = []
    for i in range(shnum):
        f.seek(shoff + i * shentsize)
        sh_name, sh_type, _, _, sh_offset, sh_size, _, _, _, _ = section.unpack(
            f.read(section.size)
        )
        headers.append((sh_name, sh_type, sh_offset, sh_size))

    _, _, strtab_offset, strtab_size = headers[shstrndx]
    f.seek(strtab_offset)
    strtab = f.read(strtab_size)

    wanted = name.encode()
    for sh_name, sh_type, sh_offset, sh_size in headers:
        end = strtab.find(b"\0", sh_name)
        if end < 0:
            end = len(strtab)
        if strtab[sh_name:end] == wanted and sh_type != _SHT_NOBITS:
            return Section(name=name, offset=sh_offset, size=sh_size)
    return None
