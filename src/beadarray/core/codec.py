"""
Primitive little-endian decoding shared by the BPM, EGT and GTC readers.

All Illumina bead-array files store integers and floats little-endian and
strings as a variable-length byte count followed by the raw bytes. The
count uses 7-bit groups, low group first, with the high bit of each byte
flagging that another group follows:

    length  maximum
    bytes   length
    ------  --------
      1       127 B
      2        16 KB
      3         2 MB

The terminal byte is added unmasked. It never has the high bit set, so the
result matches LEB128 for every string seen in practice, but the arithmetic
is kept exactly as the instrument software defines it.
"""

from __future__ import annotations
import struct
from typing import BinaryIO, Callable, TypeVar

import numpy as np

from beadarray.core.result import Result, Ok, Err
from beadarray.core.errors import (
    DecodeError,
    EncodingError,
    FormatError,
    StorageError,
    TruncatedReadError,
)

T = TypeVar("T")

_INT16 = struct.Struct("<h")
_UINT16 = struct.Struct("<H")
_INT32 = struct.Struct("<i")
_UINT8 = struct.Struct("<B")
_FLOAT32 = struct.Struct("<f")

# Element types for flat arrays; always explicitly little-endian.
ARRAY_DTYPES = {
    "int16": np.dtype("<i2"),
    "uint16": np.dtype("<u2"),
    "int32": np.dtype("<i4"),
    "float32": np.dtype("<f4"),
    "uint8": np.dtype("u1"),
}


class BinaryReader:
    """
    Little-endian field reader over a binary stream.

    Every method returns a Result. A short read is a TruncatedReadError and
    an OSError from the stream is a StorageError; nothing is raised.
    """

    def __init__(self, stream: BinaryIO, encoding: str = "utf-8") -> None:
        self._stream = stream
        self.encoding = encoding

    @property
    def stream(self) -> BinaryIO:
        return self._stream

    def read_bytes(self, count: int, what: str = "field") -> Result[bytes, DecodeError]:
        """Read exactly `count` bytes."""
        if count < 0:
            return Err(FormatError(f"Negative length {count} for {what}"))
        chunks = []
        remaining = count
        try:
            while remaining > 0:
                chunk = self._stream.read(remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        except (OSError, ValueError) as e:
            return Err(StorageError(f"Failed reading {what}: {e}"))
        data = b"".join(chunks)
        if len(data) != count:
            return Err(TruncatedReadError(count, len(data), what))
        return Ok(data)

    def skip(self, count: int, what: str = "padding") -> Result[None, DecodeError]:
        """Consume and discard `count` bytes."""
        result = self.read_bytes(count, what)
        if result.is_err():
            return result
        return Ok(None)

    def _unpack(self, codec: struct.Struct, what: str) -> Result[int | float, DecodeError]:
        result = self.read_bytes(codec.size, what)
        if result.is_err():
            return result
        return Ok(codec.unpack(result.unwrap())[0])

    def read_int16(self, what: str = "int16") -> Result[int, DecodeError]:
        return self._unpack(_INT16, what)

    def read_uint16(self, what: str = "uint16") -> Result[int, DecodeError]:
        return self._unpack(_UINT16, what)

    def read_int32(self, what: str = "int32") -> Result[int, DecodeError]:
        return self._unpack(_INT32, what)

    def read_byte(self, what: str = "byte") -> Result[int, DecodeError]:
        return self._unpack(_UINT8, what)

    def read_float32(self, what: str = "float32") -> Result[float, DecodeError]:
        return self._unpack(_FLOAT32, what)

    def read_struct(self, codec: struct.Struct, what: str = "record") -> Result[tuple, DecodeError]:
        """Read and unpack one fixed-layout record."""
        result = self.read_bytes(codec.size, what)
        if result.is_err():
            return result
        return Ok(codec.unpack(result.unwrap()))

    def read_count(self, what: str = "count") -> Result[int, DecodeError]:
        """Read an int32 element count, rejecting negative values."""
        result = self.read_int32(what)
        if result.is_err():
            return result
        count = result.unwrap()
        if count < 0:
            return Err(FormatError(f"Negative {what}: {count}"))
        return Ok(count)

    def read_string_length(self) -> Result[int, DecodeError]:
        """Decode the 7-bit group length prefix of a string."""
        result = self.read_byte("string length")
        if result.is_err():
            return result
        partial = result.unwrap()
        total = 0
        groups = 0
        while partial & 0x80:
            total += (partial & 0x7F) << (7 * groups)
            result = self.read_byte("string length")
            if result.is_err():
                return result
            partial = result.unwrap()
            groups += 1
        total += partial << (7 * groups)
        return Ok(total)

    def read_string(self, what: str = "string") -> Result[str, DecodeError]:
        """Read a length-prefixed string. Zero length yields ''."""
        length = self.read_string_length()
        if length.is_err():
            return length
        raw = self.read_bytes(length.unwrap(), what)
        if raw.is_err():
            return raw
        try:
            return Ok(raw.unwrap().decode(self.encoding))
        except UnicodeDecodeError as e:
            return Err(EncodingError(f"Undecodable {what}: {e}"))

    def read_array(self, kind: str, count: int, what: str = "array") -> Result[np.ndarray, DecodeError]:
        """
        Read `count` fixed-width elements into a flat numpy array.

        The byte length is checked before the buffer is viewed, and the dtype
        carries its byte order, so the result is independent of the host.
        """
        dtype = ARRAY_DTYPES[kind]
        raw = self.read_bytes(count * dtype.itemsize, what)
        if raw.is_err():
            return raw
        return Ok(np.frombuffer(raw.unwrap(), dtype=dtype, count=count))

    def read_counted_array(self, kind: str, what: str = "array") -> Result[np.ndarray, DecodeError]:
        """Read an int32 element count followed by that many elements."""
        count = self.read_count(f"{what} length")
        if count.is_err():
            return count
        return self.read_array(kind, count.unwrap(), what)

    def seek(self, offset: int) -> Result[None, DecodeError]:
        try:
            self._stream.seek(offset)
        except (OSError, ValueError) as e:
            return Err(StorageError(f"Failed to seek to offset {offset}: {e}"))
        return Ok(None)


def read_many(read_one: Callable[[], Result[T, DecodeError]], count: int) -> Result[list[T], DecodeError]:
    """
    Call `read_one` `count` times, stopping at the first error.

    Args:
        read_one: Zero-argument reader returning a Result
        count: Number of values to read

    Returns:
        Ok(list of values) or the first Err encountered
    """
    values = []
    for _ in range(count):
        result = read_one()
        if result.is_err():
            return result
        values.append(result.unwrap())
    return Ok(values)
