"""Big-endian cursor over class file bytes."""

from __future__ import annotations

import struct

from jdowser.exceptions import ClassFormatError

_U32 = struct.Struct(">I")
_U16 = struct.Struct(">H")


class ClassFileReader:
    """Reads fixed-width big-endian values, advancing an internal cursor.

    Running past the end of the buffer raises ``ClassFormatError``.
    """

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    @property
    def position(self) -> int:
        return self._pos

    def read_u32(self) -> int:
        return _U32.unpack(self.read_bytes(4))[0]

    def read_u16(self) -> int:
        return _U16.unpack(self.read_bytes(2))[0]

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_bytes(self, length: int) -> bytes:
        if length < 0 or length > self.remaining:
            raise ClassFormatError(
                f"truncated class file: need {length} bytes at offset {self._pos}, "
                f"{self.remaining} left"
            )
        chunk = self._data[self._pos : self._pos + length].tobytes()
        self._pos += length
        return chunk
