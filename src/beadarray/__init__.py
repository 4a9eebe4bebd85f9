"""
beadarray: decoders for Illumina bead-array genotyping files.

Reads the three binary formats written by Illumina genotyping software:
- BPM: probe manifest
- EGT: cluster definitions
- GTC: per-sample genotype calls, intensities and QC metrics
"""

__version__ = "1.0.0"

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
from beadarray.config import DecodeOptions, load_options
from beadarray.formats import read_bpm, read_egt, read_csv_manifest, GenotypeCallStore, guess_format

__all__ = [
    "__version__",
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
    "DecodeOptions",
    "load_options",
    "read_bpm",
    "read_egt",
    "read_csv_manifest",
    "GenotypeCallStore",
    "guess_format",
]
