"""
Core data models for beadarray.

Defines immutable data classes for decoded manifest, cluster and scanner
records. Decoded values are snapshots owned by the caller; nothing here
refers back to the file it came from.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Iterator, Mapping

import numpy as np
import pandas as pd


@dataclass(frozen=True, slots=True)
class LocusEntry:
    """
    One probe record from a BPM manifest.

    Attributes:
        locus_version: Record layout version (always 8 once decoded)
        ilmn_id: Illumina probe identifier
        name: Probe name, the key used everywhere else
        snp: Allele string such as "[A/G]"
        chrom: Chromosome name
        map_info: Genomic position
        address_a: Bead address of the A probe
        address_b: Bead address of the B probe (0 for Infinium II)
        assay_type: 0 Infinium II, 1 Infinium I red, 2 Infinium I green
    """
    locus_version: int
    ilmn_id: str
    name: str
    snp: str
    chrom: str
    map_info: int
    address_a: int
    address_b: int
    assay_type: int
    ref_strand: str
    genome_build: str
    source: str
    source_version: str
    source_strand: str
    ploidy: str
    species: str
    ilmn_strand: str

    def to_dict(self) -> dict:
        """Convert to dictionary for DataFrame creation."""
        return asdict(self)


@dataclass(frozen=True, slots=True, eq=False)
class Manifest:
    """
    Decoded BPM manifest.

    `names` is the canonical probe order used by GTC arrays; the
    normalization id at the same index selects a transform in a GTC file.
    """
    version: int
    manifest_name: str
    control_config: str
    names: tuple[str, ...]
    normalization_ids: np.ndarray
    locus_entries: Mapping[str, LocusEntry]

    @property
    def num_loci(self) -> int:
        return len(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[LocusEntry]:
        """Iterate entries in canonical order (names without an entry are skipped)."""
        for name in self.names:
            entry = self.locus_entries.get(name)
            if entry is not None:
                yield entry

    def to_frame(self) -> pd.DataFrame:
        """
        One row per probe in canonical order.

        Columns are the LocusEntry fields plus `norm_id`. Probes whose entry
        was overwritten by a later duplicate show that later entry.
        """
        rows = []
        for name, norm_id in zip(self.names, self.normalization_ids):
            entry = self.locus_entries.get(name)
            row = entry.to_dict() if entry is not None else {"name": name}
            row["norm_id"] = int(norm_id)
            rows.append(row)
        return pd.DataFrame(rows)


@dataclass(frozen=True, slots=True)
class ClusterStats:
    """Polar summary of one genotype cluster (AA, AB or BB)."""
    theta_mean: float
    theta_dev: float
    r_mean: float
    r_dev: float
    n: int


@dataclass(frozen=True, slots=True)
class ClusterScore:
    cluster_separation: float
    total_score: float
    original_score: float
    edited: bool


@dataclass(frozen=True, slots=True)
class ClusterRecord:
    aa: ClusterStats
    ab: ClusterStats
    bb: ClusterStats
    intensity_threshold: float
    score: ClusterScore
    address: int


@dataclass(frozen=True, slots=True)
class ClusterSet:
    """Decoded EGT cluster file."""
    gencall_version: str
    cluster_version: str
    call_version: str
    normalization_version: str
    date_created: str
    manifest_name: str
    records: Mapping[str, ClusterRecord]

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, name: object) -> bool:
        return name in self.records

    def __getitem__(self, name: str) -> ClusterRecord:
        return self.records[name]

    def to_frame(self) -> pd.DataFrame:
        """One row per probe with the cluster statistics flattened."""
        rows = []
        for name, record in self.records.items():
            row = {"name": name, "address": record.address}
            for label, stats in (("aa", record.aa), ("ab", record.ab), ("bb", record.bb)):
                row[f"{label}_n"] = stats.n
                row[f"{label}_theta_mean"] = stats.theta_mean
                row[f"{label}_theta_dev"] = stats.theta_dev
                row[f"{label}_r_mean"] = stats.r_mean
                row[f"{label}_r_dev"] = stats.r_dev
            row["intensity_threshold"] = record.intensity_threshold
            row["cluster_separation"] = record.score.cluster_separation
            row["total_score"] = record.score.total_score
            row["original_score"] = record.score.original_score
            row["edited"] = record.score.edited
            rows.append(row)
        return pd.DataFrame(rows)


@dataclass(frozen=True, slots=True)
class ScannerData:
    name: str
    pmt_green: int
    pmt_red: int
    version: str
    user: str
