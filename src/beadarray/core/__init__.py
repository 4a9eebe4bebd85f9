"""
Core module for beadarray.

Contains result types, the decode error hierarchy, primitive little-endian
decoding, decoded data models and intensity normalization.
"""

from beadarray.core.result import Result, Ok, Err
from beadarray.core.errors import (
    DecodeError,
    FormatError,
    TruncatedReadError,
    EncodingError,
    VersionUnsupportedError,
    StorageError,
    StoreClosedError,
)
from beadarray.core.codec import BinaryReader
from beadarray.core.models import (
    LocusEntry,
    Manifest,
    ClusterStats,
    ClusterScore,
    ClusterRecord,
    ClusterSet,
    ScannerData,
)
from beadarray.core.transform import NormalizationTransform
from beadarray.core.genotypes import GENOTYPE_CODES

__all__ = [
    "Result",
    "Ok",
    "Err",
    "DecodeError",
    "FormatError",
    "TruncatedReadError",
    "EncodingError",
    "VersionUnsupportedError",
    "StorageError",
    "StoreClosedError",
    "BinaryReader",
    "LocusEntry",
    "Manifest",
    "ClusterStats",
    "ClusterScore",
    "ClusterRecord",
    "ClusterSet",
    "ScannerData",
    "NormalizationTransform",
    "GENOTYPE_CODES",
]
