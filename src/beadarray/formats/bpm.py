"""
BPM manifest decoding.

A BPM file is read front to back in one pass:

    "BPM" + 1 reserved byte
    int32   version
    string  manifest name
    string  control config          (version > 1 only)
    int32   locus count N
    N x int32                       (unused)
    N x string  probe names         (canonical order)
    N x byte    normalization ids   (each < 100)
    N x locus entry

Only version 8 locus entries can be decoded. Several strings inside an
entry are always empty in files written by the instrument software; they
are checked, because a non-empty value means the layout assumption is
wrong and every following field would be misread.
"""

from __future__ import annotations
import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Optional

from beadarray.config import DecodeOptions, DEFAULT_OPTIONS
from beadarray.core.codec import BinaryReader, read_many
from beadarray.core.errors import (
    DecodeError,
    EncodingError,
    FormatError,
    StorageError,
    VersionUnsupportedError,
)
from beadarray.core.models import LocusEntry, Manifest
from beadarray.core.result import Result, Ok, Err

logger = logging.getLogger(__name__)

BPM_MAGIC = b"BPM"

# Setting this bit in the header version zeroes the version (see _effective_version).
VERSION_FLAG = 0x1000

MAX_NORMALIZATION_ID = 100

SUPPORTED_LOCUS_VERSION = 8
KNOWN_LOCUS_VERSIONS = (6, 7, 8)

_DECIMAL = re.compile(r"[+-]?[0-9]+")

# Version 8 locus entry, in stream order. Fields named None are consumed
# and dropped; "reserved" strings must be empty.
_LOCUS_V8_LAYOUT: tuple[tuple[Optional[str], str, int], ...] = (
    ("ilmn_id", "string", 0),
    ("name", "string", 0),
    (None, "reserved", 0),
    (None, "reserved", 0),
    (None, "reserved", 0),
    (None, "int32", 0),  # countdown from the locus count
    (None, "reserved", 0),
    ("ilmn_strand", "string", 0),
    ("snp", "string", 0),
    ("chrom", "string", 0),
    ("ploidy", "string", 0),
    ("species", "string", 0),
    ("map_info", "decimal", 0),
    (None, "reserved", 0),
    ("source_strand", "string", 0),
    ("address_a", "int32", 0),
    ("address_b", "int32", 0),
    (None, "reserved", 0),
    (None, "reserved", 0),
    ("genome_build", "string", 0),
    ("source", "string", 0),
    ("source_version", "string", 0),
    (None, "string", 0),  # source strand, repeated
    (None, "reserved", 0),
    (None, "skip", 3),
    ("assay_type", "byte", 0),
    (None, "skip", 16),
    ("ref_strand", "string", 0),
)


def _effective_version(version: int) -> int:
    """
    Apply the header version flag.

    When the flag bit is set the stored version is XORed with itself, which
    always yields 0 rather than clearing only the flag. Readers of these
    files have always done this, so version-dependent fields (the control
    config) are skipped for flagged files.
    """
    if version & VERSION_FLAG:
        version = version ^ version
    return version


def _parse_decimal(text: str, what: str) -> Result[int, DecodeError]:
    if not _DECIMAL.fullmatch(text):
        return Err(EncodingError(f"Expected a decimal integer for {what}, got {text!r}"))
    return Ok(int(text))


def _read_locus_field(reader: BinaryReader, kind: str, size: int, what: str) -> Result[object, DecodeError]:
    if kind == "string":
        return reader.read_string(what)
    if kind == "int32":
        return reader.read_int32(what)
    if kind == "byte":
        return reader.read_byte(what)
    if kind == "skip":
        return reader.skip(size, what)
    if kind == "decimal":
        text = reader.read_string(what)
        if text.is_err():
            return text
        return _parse_decimal(text.unwrap(), what)
    if kind == "reserved":
        text = reader.read_string(what)
        if text.is_err():
            return text
        if text.unwrap() != "":
            return Err(FormatError(f"Manifest format error: reserved field is not empty ({text.unwrap()!r})"))
        return Ok(None)
    raise ValueError(f"Unknown locus field kind: {kind}")


def read_locus_entry(reader: BinaryReader) -> Result[LocusEntry, DecodeError]:
    """
    Decode one locus entry.

    Version 6 and 7 entries are recognized but have no decoder; any other
    version means the stream is not positioned on a locus entry.
    """
    version = reader.read_int32("locus entry version")
    if version.is_err():
        return version
    locus_version = version.unwrap()

    if locus_version != SUPPORTED_LOCUS_VERSION:
        if locus_version in KNOWN_LOCUS_VERSIONS:
            return Err(VersionUnsupportedError(
                f"Can not parse locus entry version {locus_version}", locus_version
            ))
        return Err(FormatError(f"Manifest format error: unknown version for locus entry ({locus_version})"))

    values = {"locus_version": locus_version}
    for index, (attribute, kind, size) in enumerate(_LOCUS_V8_LAYOUT):
        what = attribute or f"locus field {index}"
        result = _read_locus_field(reader, kind, size, what)
        if result.is_err():
            return result
        if attribute is not None:
            values[attribute] = result.unwrap()

    return Ok(LocusEntry(**values))


def decode_bpm(
    reader: BinaryReader,
    progress: Optional[Callable[[int], None]] = None,
) -> Result[Manifest, DecodeError]:
    """
    Decode a manifest from a positioned reader.

    Args:
        reader: Reader at the start of the file
        progress: Optional callback receiving the number of loci decoded

    Returns:
        Ok(Manifest) or the first decode error
    """
    magic = reader.read_bytes(len(BPM_MAGIC), "magic")
    if magic.is_err():
        return magic
    if magic.unwrap() != BPM_MAGIC:
        return Err(FormatError("File is not BPM format"))

    skipped = reader.skip(1, "reserved header byte")
    if skipped.is_err():
        return skipped

    version = reader.read_int32("version")
    if version.is_err():
        return version
    version = _effective_version(version.unwrap())

    manifest_name = reader.read_string("manifest name")
    if manifest_name.is_err():
        return manifest_name

    control_config = ""
    if version > 1:
        config = reader.read_string("control config")
        if config.is_err():
            return config
        control_config = config.unwrap()

    num_loci = reader.read_count("locus count")
    if num_loci.is_err():
        return num_loci
    num_loci = num_loci.unwrap()
    logger.debug(f"Manifest version {version}, {num_loci} loci")

    skipped = reader.skip(4 * num_loci, "locus index block")
    if skipped.is_err():
        return skipped

    names = read_many(lambda: reader.read_string("probe name"), num_loci)
    if names.is_err():
        return names

    norm_ids = reader.read_array("uint8", num_loci, "normalization ids")
    if norm_ids.is_err():
        return norm_ids
    norm_ids = norm_ids.unwrap()
    invalid = (norm_ids >= MAX_NORMALIZATION_ID).nonzero()[0]
    if len(invalid):
        return Err(FormatError(
            f"Manifest format error: read invalid normalization ID {norm_ids[invalid[0]]} "
            f"at locus {invalid[0]}"
        ))

    entries: dict[str, LocusEntry] = {}
    for i in range(num_loci):
        entry = read_locus_entry(reader)
        if entry.is_err():
            return entry
        entry = entry.unwrap()
        entries[entry.name] = entry
        if progress is not None:
            progress(i + 1)

    if len(entries) != num_loci:
        logger.warning(f"{num_loci - len(entries)} duplicate probe names; later entries kept")

    return Ok(Manifest(
        version=version,
        manifest_name=manifest_name.unwrap(),
        control_config=control_config,
        names=tuple(names.unwrap()),
        normalization_ids=norm_ids,
        locus_entries=MappingProxyType(entries),
    ))


def read_bpm(
    path: Path | str,
    options: DecodeOptions = DEFAULT_OPTIONS,
    progress: Optional[Callable[[int], None]] = None,
) -> Result[Manifest, DecodeError]:
    """
    Read a BPM manifest file.

    Args:
        path: Path to .bpm file
        options: Decoder options
        progress: Optional callback receiving the number of loci decoded

    Returns:
        Ok(Manifest) on success, Err(DecodeError) on failure

    Example:
        >>> result = read_bpm("GSA-24v3-0_A1.bpm")
        >>> if result.is_ok():
        ...     manifest = result.unwrap()
        ...     print(manifest.names[:5])
    """
    path = Path(path)
    try:
        f = open(path, "rb")
    except OSError as e:
        return Err(StorageError(f"Failed to open manifest {path}: {e}"))

    logger.info(f"Reading manifest {path}")
    with f:
        result = decode_bpm(BinaryReader(f, options.string_encoding), progress)

    if result.is_ok():
        logger.info(f"Decoded {result.unwrap().num_loci} loci from {path.name}")
    return result
