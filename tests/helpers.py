"""Builders for fake Java installations and class files used across tests."""

from __future__ import annotations

import stat
import struct


OPENJDK_11_BANNER = (
    b"OpenJDK 64-Bit Server VM (11.0.2+9) for linux-amd64 JRE (11.0.2+9), "
    b"built on Jan 15 2019 by \"mach5one\" with gcc 7.3.0"
)


def write_strings(path, *strings: bytes) -> None:
    """Write NUL-separated strings with some binary noise around them."""
    data = b"\x7f\x01\x02\0"
    for s in strings:
        data += s + b"\0" + b"\x90\x91\0"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def make_java_home(base, name="jdk", jdk=True, java_script=None):
    """Create ``<base>/<name>`` with bin/java (and bin/javac) and lib/server/libjvm.so."""
    home = base / name
    (home / "bin").mkdir(parents=True)
    java = home / "bin" / "java"
    java.write_text(java_script or "#!/bin/sh\nexit 1\n")
    java.chmod(java.stat().st_mode | stat.S_IEXEC)
    if jdk:
        (home / "bin" / "javac").write_text("")
    libjvm = home / "lib" / "server" / "libjvm.so"
    write_strings(libjvm, b"nothing interesting here")
    return home


def class_file(constants: list[bytes], fields: bytes = b"\0\0", count: int | None = None) -> bytes:
    """Assemble a minimal class file from pre-encoded constant pool entries."""
    if count is None:
        count = len(constants) + 1
    body = struct.pack(">IHHH", 0xCAFEBABE, 0, 52, count)
    body += b"".join(constants)
    body += struct.pack(">HHH", 0x21, 0, 0)  # access, this, super
    body += b"\0\0"  # interfaces
    body += fields
    body += b"\0\0"  # methods
    body += b"\0\0"  # attributes
    return body


def utf8(text: str) -> bytes:
    raw = text.encode()
    return struct.pack(">BH", 1, len(raw)) + raw


def string_ref(index: int) -> bytes:
    return struct.pack(">BH", 8, index)


def version_class(pairs: dict[str, str]) -> bytes:
    """A class whose static final String fields hold ``pairs``."""
    constants = [utf8("ConstantValue"), utf8("Ljava/lang/String;")]
    field_data = b""
    for name, value in pairs.items():
        name_index = len(constants) + 1
        constants.append(utf8(name))
        value_index = len(constants) + 1
        constants.append(utf8(value))
        string_index = len(constants) + 1
        constants.append(string_ref(value_index))
        field_data += struct.pack(">HHHH", 0x19, name_index, 2, 1)
        field_data += struct.pack(">HIH", 1, 2, string_index)
    fields = struct.pack(">H", len(pairs)) + field_data
    return class_file(constants, fields=fields)


