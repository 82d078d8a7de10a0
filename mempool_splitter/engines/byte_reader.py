#!filepath: mempool_splitter/engines/byte_reader.py
from __future__ import annotations

from mempool_splitter.utils.errors import CodecError


class ByteReader:
    """
    big-endian 顺序读取器（consensus serialization 全部是大端）

    越界读取一律抛 CodecError，不会返回截断的数据。
    """

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes):
        self._data = memoryview(bytes(data))
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def at_end(self) -> bool:
        return self._pos == len(self._data)

    def read(self, n: int) -> bytes:
        if n < 0 or self.remaining < n:
            raise CodecError(
                f"truncated input: need {n} bytes at offset {self._pos}, have {self.remaining}"
            )
        out = self._data[self._pos:self._pos + n].tobytes()
        self._pos += n
        return out

    def read_rest(self) -> bytes:
        return self.read(self.remaining)

    def _uint(self, size: int) -> int:
        return int.from_bytes(self.read(size), "big")

    def u8(self) -> int:
        return self._uint(1)

    def u16(self) -> int:
        return self._uint(2)

    def u32(self) -> int:
        return self._uint(4)

    def u64(self) -> int:
        return self._uint(8)

    def u128(self) -> int:
        return self._uint(16)

    def i128(self) -> int:
        return int.from_bytes(self.read(16), "big", signed=True)

    def u8_prefixed(self) -> bytes:
        return self.read(self.u8())

    def u32_prefixed(self) -> bytes:
        return self.read(self.u32())

    def ascii_u8_prefixed(self, what: str = "name") -> str:
        raw = self.u8_prefixed()
        try:
            return raw.decode("ascii")
        except UnicodeDecodeError as e:
            raise CodecError(f"{what} is not ascii: {raw!r}") from e
