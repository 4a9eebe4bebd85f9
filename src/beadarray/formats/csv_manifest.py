"""
Text (CSV) manifest reading.

Illumina ships every manifest in a comma-separated form next to the BPM.
The probe table is the block that starts at the header row beginning with
"IlmnID" and ends at the "[Controls]" section marker.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import pandas as pd

from beadarray.core.errors import DecodeError, EncodingError, FormatError, StorageError
from beadarray.core.result import Result, Ok, Err

logger = logging.getLogger(__name__)

HEADER_PREFIX = "IlmnID"
CONTROLS_MARKER = "[Controls]"

# Column name in the file -> CsvLocusEntry attribute
COLUMNS = {
    "IlmnID": "ilmn_id",
    "Name": "name",
    "IlmnStrand": "ilmn_strand",
    "SNP": "snp",
    "AddressA_ID": "address_a_id",
    "AlleleA_ProbeSeq": "allele_a_probe_seq",
    "AddressB_ID": "address_b_id",
    "AlleleB_ProbeSeq": "allele_b_probe_seq",
    "GenomeBuild": "genome_build",
    "Chr": "chrom",
    "MapInfo": "map_info",
    "Ploidy": "ploidy",
    "Species": "species",
    "Source": "source",
    "SourceVersion": "source_version",
    "SourceStrand": "source_strand",
    "SourceSeq": "source_seq",
    "TopGenomicSeq": "top_genomic_seq",
    "BeadSetID": "bead_set_id",
    "Exp_Clusters": "exp_clusters",
    "RefStrand": "ref_strand",
}

REQUIRED_COLUMNS = ("Name", "MapInfo")


@dataclass(frozen=True, slots=True)
class CsvLocusEntry:
    ilmn_id: str
    name: str
    ilmn_strand: str
    snp: str
    address_a_id: str
    allele_a_probe_seq: str
    address_b_id: str
    allele_b_probe_seq: str
    genome_build: str
    chrom: str
    map_info: int
    ploidy: str
    species: str
    source: str
    source_version: str
    source_strand: str
    source_seq: str
    top_genomic_seq: str
    bead_set_id: str
    exp_clusters: str
    ref_strand: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class CsvManifest:
    names: tuple[str, ...]
    locus_entries: Mapping[str, CsvLocusEntry]

    def __len__(self) -> int:
        return len(self.names)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([self.locus_entries[name].to_dict() for name in dict.fromkeys(self.names)])


def _locate_assay_block(path: Path) -> Result[tuple[int, int], DecodeError]:
    """Return (header line index, number of data lines)."""
    header_index = None
    with open(path, encoding="utf-8", errors="replace") as f:
        for line_num, line in enumerate(f):
            if header_index is None:
                if line.startswith(HEADER_PREFIX):
                    header_index = line_num
            elif line.strip() == CONTROLS_MARKER:
                return Ok((header_index, line_num - header_index - 1))
    if header_index is None:
        return Err(FormatError(f"No '{HEADER_PREFIX}' header row found in {path}"))
    return Ok((header_index, None))


def read_csv_manifest(path: Path | str) -> Result[CsvManifest, DecodeError]:
    """
    Read the probe table of a CSV manifest.

    Args:
        path: Path to manifest .csv

    Returns:
        Ok(CsvManifest) with names in file order, Err(DecodeError) on failure
    """
    path = Path(path)
    try:
        block = _locate_assay_block(path)
        if block.is_err():
            return block
        header_index, nrows = block.unwrap()
        df = pd.read_csv(
            path,
            skiprows=header_index,
            nrows=nrows,
            dtype=str,
            keep_default_na=False,
            encoding_errors="replace",
        )
    except OSError as e:
        return Err(StorageError(f"Failed to read manifest {path}: {e}"))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        return Err(FormatError(f"Malformed manifest table in {path}: {e}"))

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        return Err(FormatError(f"Missing required columns: {missing}"))

    names = []
    entries: dict[str, CsvLocusEntry] = {}
    for row_num, row in enumerate(df.to_dict("records"), start=header_index + 2):
        values = {attr: row.get(column, "") for column, attr in COLUMNS.items()}
        try:
            values["map_info"] = int(values["map_info"])
        except ValueError:
            return Err(EncodingError(f"Invalid MapInfo at line {row_num}: {values['map_info']!r}"))
        entry = CsvLocusEntry(**values)
        names.append(entry.name)
        entries[entry.name] = entry

    logger.info(f"Read {len(names)} loci from {path.name}")
    return Ok(CsvManifest(names=tuple(names), locus_entries=MappingProxyType(entries)))
