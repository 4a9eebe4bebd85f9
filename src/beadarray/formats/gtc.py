"""
GTC genotype call file access.

A GTC file starts with a table of contents mapping field ids to byte
offsets:

    "gtc" + byte version (3, 4 or 5)
    int32 entry count
    entry count x (int16 field id, int32 offset)

Fields are decoded on demand by seeking to their offset, so a store keeps
its file open until close(). For a few header-like fields (locus count,
ploidy, ploidy type) the TOC "offset" is the value itself.

A store is not safe for concurrent use; every accessor moves the shared
file position. Use one store per thread or serialize access externally.
"""

from __future__ import annotations
import logging
import os
import struct
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO, Mapping, Optional

import numpy as np

from beadarray.config import DecodeOptions, DEFAULT_OPTIONS
from beadarray.core.codec import BinaryReader
from beadarray.core.errors import (
    DecodeError,
    FormatError,
    StorageError,
    StoreClosedError,
    VersionUnsupportedError,
)
from beadarray.core.genotypes import top_strand_call
from beadarray.core.models import ScannerData
from beadarray.core.result import Result, Ok, Err
from beadarray.core.transform import NormalizationTransform, apply_transforms

logger = logging.getLogger(__name__)

GTC_MAGIC = b"gtc"
SUPPORTED_VERSIONS = (3, 4, 5)

# B allele frequencies and LogR ratios were added in version 4
MIN_VERSION_BAF_LOGR = 4

# Transforms are stored in 52-byte blocks; only the first 28 bytes are known.
_TRANSFORM_BLOCK = struct.Struct("<i6f24x")
_TOC_ENTRY = struct.Struct("<hi")

# Per-locus call counts follow GC50 directly.
NUM_CALLS_DELTA = 4
NUM_NO_CALLS_DELTA = 8
NUM_INTENSITY_ONLY_DELTA = 12


class FieldId(IntEnum):
    """TOC field identifiers."""
    NUM_SNPS = 1
    PLOIDY = 2
    PLOIDY_TYPE = 3
    SAMPLE_NAME = 10
    SAMPLE_PLATE = 11
    SAMPLE_WELL = 12
    CLUSTER_FILE = 100
    SNP_MANIFEST = 101
    IMAGING_DATE = 200
    AUTOCALL_DATE = 201
    AUTOCALL_VERSION = 300
    NORMALIZATION_TRANSFORMS = 400
    CONTROLS_X = 500
    CONTROLS_Y = 501
    RAW_X = 1000
    RAW_Y = 1001
    GENOTYPES = 1002
    BASE_CALLS = 1003
    GENOTYPE_SCORES = 1004
    SCANNER_DATA = 1005
    CALL_RATE = 1006
    GENDER = 1007
    LOGR_DEV = 1008
    GC10 = 1009
    GC50 = 1011
    B_ALLELE_FREQS = 1012
    LOGR_RATIOS = 1013
    PERCENTILES_X = 1014
    PERCENTILES_Y = 1015
    SLIDE_IDENTIFIER = 1016


def _field_label(field_id: int) -> str:
    try:
        return FieldId(field_id).name.lower()
    except ValueError:
        return f"field {field_id}"


def _read_header(reader: BinaryReader) -> Result[tuple[int, dict[int, int]], DecodeError]:
    magic = reader.read_bytes(len(GTC_MAGIC), "magic")
    if magic.is_err():
        return magic
    if magic.unwrap() != GTC_MAGIC:
        return Err(FormatError("GTC format error: bad format identifier"))

    version = reader.read_byte("version")
    if version.is_err():
        return version
    version = version.unwrap()
    if version not in SUPPORTED_VERSIONS:
        return Err(VersionUnsupportedError(f"Unsupported GTC file version ({version})", version))

    num_entries = reader.read_count("TOC entry count")
    if num_entries.is_err():
        return num_entries
    raw = reader.read_bytes(num_entries.unwrap() * _TOC_ENTRY.size, "table of contents")
    if raw.is_err():
        return raw

    toc = {field_id: offset for field_id, offset in _TOC_ENTRY.iter_unpack(raw.unwrap())}
    return Ok((version, toc))


class GenotypeCallStore:
    """
    Random-access reader for one GTC file.

    Open with GenotypeCallStore.open(); every accessor returns a Result.
    The store owns its file handle: close() (or leaving a `with` block)
    releases it, after which every accessor returns Err(StoreClosedError).

    Example:
        >>> result = GenotypeCallStore.open("sample.gtc")
        >>> with result.unwrap() as gtc:
        ...     call_rate = gtc.call_rate().unwrap()
        ...     genotypes = gtc.genotypes().unwrap()
    """

    def __init__(
        self,
        handle: BinaryIO,
        path: Path | str | None,
        version: int,
        toc: Mapping[int, int],
        encoding: str = DEFAULT_OPTIONS.string_encoding,
        size: Optional[int] = None,
    ) -> None:
        self._handle = handle
        self._reader = BinaryReader(handle, encoding)
        self.path = Path(path) if path is not None else None
        self.version = version
        self._toc = dict(toc)
        self._size = size
        self._genotypes: Optional[np.ndarray] = None
        self._closed = False

    @classmethod
    def open(
        cls,
        source: Path | str | BinaryIO,
        options: DecodeOptions = DEFAULT_OPTIONS,
    ) -> Result[GenotypeCallStore, DecodeError]:
        """
        Open a GTC file and read its table of contents.

        Args:
            source: Path to .gtc file or a seekable binary stream. A stream
                is owned by the store from here on and closed with it.
            options: Decoder options

        Returns:
            Ok(GenotypeCallStore) or Err(DecodeError); on error the file is
            closed again
        """
        if hasattr(source, "read"):
            handle = source
            path = getattr(source, "name", None)
            path = path if isinstance(path, (str, os.PathLike)) else None
        else:
            path = Path(source)
            try:
                handle = open(path, "rb")
            except OSError as e:
                return Err(StorageError(f"Failed to open GTC file {path}: {e}"))

        reader = BinaryReader(handle, options.string_encoding)
        header = _read_header(reader)
        if header.is_err():
            handle.close()
            return header
        version, toc = header.unwrap()

        try:
            size = handle.seek(0, os.SEEK_END)
        except (OSError, ValueError) as e:
            handle.close()
            return Err(StorageError(f"Failed to size GTC file: {e}"))

        logger.info(f"Opened GTC {path or '<stream>'}: version {version}, {len(toc)} TOC entries")
        return Ok(cls(handle, path, version, toc, options.string_encoding, size))

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Release the file handle. Safe to call more than once."""
        if not self._closed:
            self._closed = True
            self._genotypes = None
            self._handle.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> GenotypeCallStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"GenotypeCallStore({str(self.path)!r}, version={self.version}, {state})"

    @property
    def toc(self) -> Mapping[int, int]:
        """Field id to offset mapping (read-only)."""
        return MappingProxyType(self._toc)

    # -- positioning -------------------------------------------------------

    def _check_open(self) -> Result[None, DecodeError]:
        if self._closed:
            return Err(StoreClosedError("GTC store is closed"))
        return Ok(None)

    def _toc_entry(self, field_id: int) -> Result[int, DecodeError]:
        checked = self._check_open()
        if checked.is_err():
            return checked
        if field_id not in self._toc:
            return Err(StorageError(f"Field {_field_label(field_id)} ({int(field_id)}) is not in the GTC table of contents"))
        return Ok(self._toc[field_id])

    def _file_size(self) -> Result[int, DecodeError]:
        if self._size is None:
            try:
                self._size = self._handle.seek(0, os.SEEK_END)
            except (OSError, ValueError) as e:
                return Err(StorageError(f"Failed to size GTC file: {e}"))
        return Ok(self._size)

    def _goto(self, field_id: int, delta: int = 0) -> Result[None, DecodeError]:
        """Seek to a field's offset (plus `delta`), refusing offsets outside the file."""
        offset = self._toc_entry(field_id)
        if offset.is_err():
            return offset
        position = offset.unwrap() + delta
        size = self._file_size()
        if size.is_err():
            return size
        if not 0 <= position <= size.unwrap():
            return Err(StorageError(
                f"Offset {position} for {_field_label(field_id)} is outside the file ({size.unwrap()} bytes)"
            ))
        return self._reader.seek(position)

    def _read_float(self, field_id: FieldId) -> Result[float, DecodeError]:
        moved = self._goto(field_id)
        if moved.is_err():
            return moved
        return self._reader.read_float32(_field_label(field_id))

    def _read_int_after(self, field_id: FieldId, delta: int, what: str) -> Result[int, DecodeError]:
        moved = self._goto(field_id, delta)
        if moved.is_err():
            return moved
        return self._reader.read_int32(what)

    def _read_string(self, field_id: FieldId) -> Result[str, DecodeError]:
        moved = self._goto(field_id)
        if moved.is_err():
            return moved
        return self._reader.read_string(_field_label(field_id))

    def _read_array(self, field_id: FieldId, kind: str) -> Result[np.ndarray, DecodeError]:
        moved = self._goto(field_id)
        if moved.is_err():
            return moved
        logger.debug(f"Reading {_field_label(field_id)} as {kind}")
        return self._reader.read_counted_array(kind, _field_label(field_id))

    # -- values stored in the TOC itself ----------------------------------

    def num_snps(self) -> Result[int, DecodeError]:
        return self._toc_entry(FieldId.NUM_SNPS)

    def ploidy(self) -> Result[int, DecodeError]:
        return self._toc_entry(FieldId.PLOIDY)

    def ploidy_type(self) -> Result[int, DecodeError]:
        """1 for diploid calls, other values for custom or autopolyploid."""
        return self._toc_entry(FieldId.PLOIDY_TYPE)

    # -- scalar metrics ----------------------------------------------------

    def call_rate(self) -> Result[float, DecodeError]:
        return self._read_float(FieldId.CALL_RATE)

    def logr_dev(self) -> Result[float, DecodeError]:
        return self._read_float(FieldId.LOGR_DEV)

    def gc10(self) -> Result[float, DecodeError]:
        """GenCall score, 10th percentile."""
        return self._read_float(FieldId.GC10)

    def gc50(self) -> Result[float, DecodeError]:
        """GenCall score, 50th percentile."""
        return self._read_float(FieldId.GC50)

    def num_calls(self) -> Result[int, DecodeError]:
        return self._read_int_after(FieldId.GC50, NUM_CALLS_DELTA, "num_calls")

    def num_no_calls(self) -> Result[int, DecodeError]:
        return self._read_int_after(FieldId.GC50, NUM_NO_CALLS_DELTA, "num_no_calls")

    def num_intensity_only(self) -> Result[int, DecodeError]:
        return self._read_int_after(FieldId.GC50, NUM_INTENSITY_ONLY_DELTA, "num_intensity_only")

    def gender(self) -> Result[str, DecodeError]:
        """Gender call as a single character (typically M, F or U)."""
        moved = self._goto(FieldId.GENDER)
        if moved.is_err():
            return moved
        return self._reader.read_byte("gender").map(chr)

    # -- strings -----------------------------------------------------------

    def sample_name(self) -> Result[str, DecodeError]:
        """Sample name, or the file name without extension when empty."""
        name = self._read_string(FieldId.SAMPLE_NAME)
        if name.is_ok() and name.unwrap() == "" and self.path is not None:
            return Ok(self.path.stem)
        return name

    def sample_plate(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.SAMPLE_PLATE)

    def sample_well(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.SAMPLE_WELL)

    def cluster_file(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.CLUSTER_FILE)

    def snp_manifest(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.SNP_MANIFEST)

    def imaging_date(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.IMAGING_DATE)

    def autocall_date(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.AUTOCALL_DATE)

    def autocall_version(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.AUTOCALL_VERSION)

    def slide_identifier(self) -> Result[str, DecodeError]:
        return self._read_string(FieldId.SLIDE_IDENTIFIER)

    # -- per-locus arrays --------------------------------------------------

    def genotypes(self) -> Result[np.ndarray, DecodeError]:
        """
        Genotype codes, one uint8 per locus (see GENOTYPE_CODES).

        Read once and cached for the life of the store.
        """
        checked = self._check_open()
        if checked.is_err():
            return checked
        if self._genotypes is not None:
            return Ok(self._genotypes)
        result = self._read_array(FieldId.GENOTYPES, "uint8")
        if result.is_ok():
            self._genotypes = result.unwrap()
        return result

    def base_calls(self) -> Result[list[str], DecodeError]:
        """
        Base calls on the top strand, one string per locus.

        For ploidy type 1 the stored letter pair is returned as is. Otherwise
        each A/B in the genotype composition is replaced with the first or
        second stored letter, and no-calls become "-". A file without a
        ploidy type entry is treated as non-diploid. The genotype field must be
        readable for every ploidy type.
        """
        checked = self._check_open()
        if checked.is_err():
            return checked
        loaded = self.genotypes()
        if loaded.is_err():
            return loaded
        genotypes = None
        if self._toc.get(FieldId.PLOIDY_TYPE, 0) != 1:
            genotypes = loaded.unwrap()

        moved = self._goto(FieldId.BASE_CALLS)
        if moved.is_err():
            return moved
        count = self._reader.read_count("base call count")
        if count.is_err():
            return count
        count = count.unwrap()
        raw = self._reader.read_bytes(2 * count, "base_calls")
        if raw.is_err():
            return raw
        pairs = raw.unwrap().decode("latin-1")

        if genotypes is None:
            return Ok([pairs[2 * i:2 * i + 2] for i in range(count)])

        if count > len(genotypes):
            return Err(FormatError(f"{count} base calls but only {len(genotypes)} genotypes"))
        calls = []
        for i in range(count):
            call = top_strand_call(int(genotypes[i]), pairs[2 * i:2 * i + 2])
            if call.is_err():
                return call
            calls.append(call.unwrap())
        return Ok(calls)

    def _require_version(self, minimum: int, what: str) -> Result[None, DecodeError]:
        checked = self._check_open()
        if checked.is_err():
            return checked
        if self.version < minimum:
            return Err(VersionUnsupportedError(
                f"{what} unavailable in GTC file version {self.version}", self.version
            ))
        return Ok(None)

    def b_allele_freqs(self) -> Result[np.ndarray, DecodeError]:
        gate = self._require_version(MIN_VERSION_BAF_LOGR, "B allele frequencies")
        if gate.is_err():
            return gate
        return self._read_array(FieldId.B_ALLELE_FREQS, "float32")

    def logr_ratios(self) -> Result[np.ndarray, DecodeError]:
        gate = self._require_version(MIN_VERSION_BAF_LOGR, "LogR ratios")
        if gate.is_err():
            return gate
        return self._read_array(FieldId.LOGR_RATIOS, "float32")

    def genotype_scores(self) -> Result[np.ndarray, DecodeError]:
        return self._read_array(FieldId.GENOTYPE_SCORES, "float32")

    def raw_x_intensities(self) -> Result[np.ndarray, DecodeError]:
        return self._read_array(FieldId.RAW_X, "int16")

    def raw_y_intensities(self) -> Result[np.ndarray, DecodeError]:
        return self._read_array(FieldId.RAW_Y, "int16")

    def control_x_intensities(self) -> Result[np.ndarray, DecodeError]:
        return self._read_array(FieldId.CONTROLS_X, "uint16")

    def control_y_intensities(self) -> Result[np.ndarray, DecodeError]:
        return self._read_array(FieldId.CONTROLS_Y, "uint16")

    def percentiles_x(self) -> Result[np.ndarray, DecodeError]:
        """5th, 50th and 95th percentile of the X intensities."""
        return self._read_array(FieldId.PERCENTILES_X, "uint16")

    def percentiles_y(self) -> Result[np.ndarray, DecodeError]:
        return self._read_array(FieldId.PERCENTILES_Y, "uint16")

    # -- normalization -----------------------------------------------------

    def normalization_transforms(self) -> Result[list[NormalizationTransform], DecodeError]:
        moved = self._goto(FieldId.NORMALIZATION_TRANSFORMS)
        if moved.is_err():
            return moved
        count = self._reader.read_count("transform count")
        if count.is_err():
            return count
        raw = self._reader.read_bytes(count.unwrap() * _TRANSFORM_BLOCK.size, "normalization_transforms")
        if raw.is_err():
            return raw
        return Ok([
            NormalizationTransform(version, offset_x, offset_y, scale_x, scale_y, shear, theta)
            for version, offset_x, offset_y, scale_x, scale_y, shear, theta
            in _TRANSFORM_BLOCK.iter_unpack(raw.unwrap())
        ])

    def normalized_intensities(self, lookup_ids) -> Result[tuple[np.ndarray, np.ndarray], DecodeError]:
        """
        Normalized X and Y intensities for every locus.

        Args:
            lookup_ids: Per-locus transform index, normally
                Manifest.normalization_ids

        Returns:
            Ok((x, y)) float32 arrays; loci with no signal are NaN and
            negative values are clamped to zero
        """
        transforms = self.normalization_transforms()
        if transforms.is_err():
            return transforms
        raw_x = self.raw_x_intensities()
        if raw_x.is_err():
            return raw_x
        raw_y = self.raw_y_intensities()
        if raw_y.is_err():
            return raw_y
        raw_x, raw_y, transforms = raw_x.unwrap(), raw_y.unwrap(), transforms.unwrap()

        lookup_ids = np.asarray(lookup_ids)
        if len(raw_x) != len(raw_y):
            return Err(FormatError(f"Raw X has {len(raw_x)} values but raw Y has {len(raw_y)}"))
        if len(lookup_ids) != len(raw_x):
            return Err(FormatError(f"{len(lookup_ids)} lookup ids for {len(raw_x)} loci"))
        if len(lookup_ids) and (lookup_ids.min() < 0 or lookup_ids.max() >= len(transforms)):
            return Err(FormatError(
                f"Normalization lookup id out of range for {len(transforms)} transforms"
            ))

        return Ok(apply_transforms(raw_x, raw_y, transforms, lookup_ids, threshold=True))

    # -- scanner -----------------------------------------------------------

    def scanner_data(self) -> Result[ScannerData, DecodeError]:
        moved = self._goto(FieldId.SCANNER_DATA)
        if moved.is_err():
            return moved
        reader = self._reader
        name = reader.read_string("scanner name")
        if name.is_err():
            return name
        pmt_green = reader.read_int32("pmt green")
        if pmt_green.is_err():
            return pmt_green
        pmt_red = reader.read_int32("pmt red")
        if pmt_red.is_err():
            return pmt_red
        version = reader.read_string("scanner version")
        if version.is_err():
            return version
        user = reader.read_string("scanner user")
        if user.is_err():
            return user
        return Ok(ScannerData(
            name=name.unwrap(),
            pmt_green=pmt_green.unwrap(),
            pmt_red=pmt_red.unwrap(),
            version=version.unwrap(),
            user=user.unwrap(),
        ))
