"""
EGT cluster file decoding.

Layout after the header is column-oriented: all N cluster records, then all
N scores, then N labels, N probe names, N addresses and N count triples.
Records are joined to names by index.
"""

from __future__ import annotations
import logging
import struct
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO

import numpy as np

from beadarray.config import DecodeOptions, DEFAULT_OPTIONS
from beadarray.core.codec import BinaryReader, read_many
from beadarray.core.errors import (
    DecodeError,
    FormatError,
    StorageError,
    VersionUnsupportedError,
)
from beadarray.core.models import ClusterRecord, ClusterScore, ClusterSet, ClusterStats
from beadarray.core.result import Result, Ok, Err

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = 3
ACCEPTED_DATA_BLOCK_VERSIONS = (8, 9)
RECORD_LAYOUT_VERSION = 9

# AA/AB/BB counts, then R dev, R mean, theta dev, theta mean (AA, AB, BB
# each) and the intensity threshold, then 14 unused floats.
_RECORD_V9 = struct.Struct("<3i13f56x")
_SCORE = struct.Struct("<3fB")


def _read_cluster_record(
    reader: BinaryReader, data_block_version: int
) -> Result[tuple[ClusterStats, ClusterStats, ClusterStats, float], DecodeError]:
    """Decode one cluster record as (AA, AB, BB, intensity threshold)."""
    if data_block_version != RECORD_LAYOUT_VERSION:
        return Err(VersionUnsupportedError(
            f"Unsupported cluster record version {data_block_version}", data_block_version
        ))
    fields = reader.read_struct(_RECORD_V9, "cluster record")
    if fields.is_err():
        return fields
    aa_n, ab_n, bb_n, *ys = fields.unwrap()

    def stats(i: int, n: int) -> ClusterStats:
        return ClusterStats(theta_mean=ys[9 + i], theta_dev=ys[6 + i], r_mean=ys[3 + i], r_dev=ys[i], n=n)

    return Ok((stats(0, aa_n), stats(1, ab_n), stats(2, bb_n), ys[12]))


def _read_cluster_score(reader: BinaryReader) -> Result[ClusterScore, DecodeError]:
    fields = reader.read_struct(_SCORE, "cluster score")
    if fields.is_err():
        return fields
    separation, total, original, edited = fields.unwrap()
    return Ok(ClusterScore(
        cluster_separation=separation,
        total_score=total,
        original_score=original,
        edited=edited != 0,
    ))


def _check_counts(records: list[tuple], counts: np.ndarray, names: list[str]) -> Result[None, DecodeError]:
    for i, (aa, ab, bb, _) in enumerate(records):
        expected = (aa.n, ab.n, bb.n)
        found = tuple(int(c) for c in counts[i])
        if expected != found:
            return Err(FormatError(
                f"Cluster counts for {names[i]} disagree: record has {expected}, count block has {found}"
            ))
    return Ok(None)


def decode_egt(reader: BinaryReader, options: DecodeOptions = DEFAULT_OPTIONS) -> Result[ClusterSet, DecodeError]:
    """
    Decode a cluster file from a positioned reader.

    Args:
        reader: Reader at the start of the file
        options: Decoder options (verify_cluster_counts)

    Returns:
        Ok(ClusterSet) or the first decode error
    """
    version = reader.read_int32("version")
    if version.is_err():
        return version
    if version.unwrap() != SUPPORTED_VERSION:
        return Err(VersionUnsupportedError(
            f"Cluster file version {version.unwrap()} not supported", version.unwrap()
        ))

    header = read_many(lambda: reader.read_string("header string"), 5)
    if header.is_err():
        return header
    gencall_version, cluster_version, call_version, normalization_version, date_created = header.unwrap()

    is_wgt = reader.read_byte("is-WGT flag")
    if is_wgt.is_err():
        return is_wgt
    if is_wgt.unwrap() == 0:
        return Err(FormatError("Only WGT cluster file version supported"))

    manifest_name = reader.read_string("manifest name")
    if manifest_name.is_err():
        return manifest_name

    data_block_version = reader.read_int32("data block version")
    if data_block_version.is_err():
        return data_block_version
    data_block_version = data_block_version.unwrap()
    if data_block_version not in ACCEPTED_DATA_BLOCK_VERSIONS:
        return Err(VersionUnsupportedError(
            f"Data block version in cluster file {data_block_version} not supported", data_block_version
        ))

    skipped = reader.read_string("opa file name")
    if skipped.is_err():
        return skipped

    num_records = reader.read_count("record count")
    if num_records.is_err():
        return num_records
    num_records = num_records.unwrap()
    logger.debug(f"Cluster file data block version {data_block_version}, {num_records} records")

    records = read_many(lambda: _read_cluster_record(reader, data_block_version), num_records)
    if records.is_err():
        return records
    records = records.unwrap()

    scores = read_many(lambda: _read_cluster_score(reader), num_records)
    if scores.is_err():
        return scores

    labels = read_many(lambda: reader.read_string("genotype label"), num_records)
    if labels.is_err():
        return labels

    names = read_many(lambda: reader.read_string("probe name"), num_records)
    if names.is_err():
        return names
    names = names.unwrap()

    addresses = reader.read_array("int32", num_records, "addresses")
    if addresses.is_err():
        return addresses
    addresses = addresses.unwrap()

    counts = reader.read_array("int32", 3 * num_records, "cluster counts")
    if counts.is_err():
        return counts
    if options.verify_cluster_counts:
        checked = _check_counts(records, counts.unwrap().reshape(num_records, 3), names)
        if checked.is_err():
            return checked

    by_name: dict[str, ClusterRecord] = {}
    for (aa, ab, bb, threshold), score, address, name in zip(records, scores.unwrap(), addresses, names):
        by_name[name] = ClusterRecord(
            aa=aa,
            ab=ab,
            bb=bb,
            intensity_threshold=threshold,
            score=score,
            address=int(address),
        )

    return Ok(ClusterSet(
        gencall_version=gencall_version,
        cluster_version=cluster_version,
        call_version=call_version,
        normalization_version=normalization_version,
        date_created=date_created,
        manifest_name=manifest_name.unwrap(),
        records=MappingProxyType(by_name),
    ))


def read_egt(source: Path | str | BinaryIO, options: DecodeOptions = DEFAULT_OPTIONS) -> Result[ClusterSet, DecodeError]:
    """
    Read an EGT cluster file.

    Args:
        source: Path to .egt file, or an open binary stream positioned at
            the start of the file (left open)
        options: Decoder options

    Returns:
        Ok(ClusterSet) on success, Err(DecodeError) on failure
    """
    if hasattr(source, "read"):
        return decode_egt(BinaryReader(source, options.string_encoding), options)

    path = Path(source)
    try:
        f = open(path, "rb")
    except OSError as e:
        return Err(StorageError(f"Failed to open cluster file {path}: {e}"))

    logger.info(f"Reading cluster file {path}")
    with f:
        result = decode_egt(BinaryReader(f, options.string_encoding), options)

    if result.is_ok():
        logger.info(f"Decoded {len(result.unwrap())} cluster records from {path.name}")
    return result
