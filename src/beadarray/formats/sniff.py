"""
File type guessing from leading bytes.

This is a convenience for callers that receive unlabeled paths; decoders
always validate the header themselves.
"""

from __future__ import annotations
import struct
from pathlib import Path
from typing import Optional

from beadarray.core.errors import DecodeError, StorageError
from beadarray.core.result import Result, Ok, Err

SNIFF_BYTES = 512

# Control bytes that do occur in text files
_TEXT_CONTROLS = frozenset(b"\t\n\r\f\b\x1b")


def looks_binary(data: bytes) -> bool:
    """True when `data` contains a NUL or any other non-text control byte."""
    return any((b < 0x20 and b not in _TEXT_CONTROLS) or b == 0x7F for b in data)


def guess_format(path: Path | str) -> Result[Optional[str], DecodeError]:
    """
    Guess whether a file is a BPM, GTC or EGT file.

    A text file that happens to start with "gtc" (a file-of-file-names
    listing a gtc/ directory, say) is not reported as GTC.

    Returns:
        Ok("bpm" | "gtc" | "egt") or Ok(None) when nothing matches
    """
    try:
        with open(path, "rb") as f:
            head = f.read(SNIFF_BYTES)
    except OSError as e:
        return Err(StorageError(f"Failed to read {path}: {e}"))

    if head[:3] == b"BPM":
        return Ok("bpm")
    if head[:3] == b"gtc" and len(head) > 3 and looks_binary(head):
        return Ok("gtc")
    if len(head) >= 4 and struct.unpack("<i", head[:4])[0] == 3 and looks_binary(head):
        return Ok("egt")
    return Ok(None)
