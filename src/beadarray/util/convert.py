"""
Tabular export of decoded files.

Builds pandas DataFrames from decoded manifests, cluster files and GTC
stores, and writes them as TSV.
"""

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from beadarray.core.errors import DecodeError, FormatError, StorageError
from beadarray.core.genotypes import GENOTYPE_CODES
from beadarray.core.models import Manifest
from beadarray.core.result import Result, Ok, Err
from beadarray.formats.gtc import GenotypeCallStore

logger = logging.getLogger(__name__)


def sample_frame(store: GenotypeCallStore, manifest: Manifest) -> Result[pd.DataFrame, DecodeError]:
    """
    Per-locus calls and intensities for one sample.

    Rows follow the manifest's canonical order. B allele frequency and LogR
    ratio columns are left out for GTC files older than version 4.

    Args:
        store: Open GTC store
        manifest: Manifest the GTC was called against

    Returns:
        Ok(DataFrame) or the first decode error
    """
    genotypes = store.genotypes()
    if genotypes.is_err():
        return genotypes
    genotypes = genotypes.unwrap()
    if len(genotypes) != manifest.num_loci:
        return Err(FormatError(
            f"GTC has {len(genotypes)} loci but manifest {manifest.manifest_name} has {manifest.num_loci}"
        ))

    columns = {
        "name": list(manifest.names),
        "genotype": [GENOTYPE_CODES[code] if code < len(GENOTYPE_CODES) else "?" for code in genotypes],
    }

    base_calls = store.base_calls()
    if base_calls.is_err():
        return base_calls
    columns["base_call"] = base_calls.unwrap()

    scores = store.genotype_scores()
    if scores.is_err():
        return scores
    columns["score"] = scores.unwrap()

    raw_x = store.raw_x_intensities()
    if raw_x.is_err():
        return raw_x
    raw_y = store.raw_y_intensities()
    if raw_y.is_err():
        return raw_y
    columns["raw_x"] = raw_x.unwrap()
    columns["raw_y"] = raw_y.unwrap()

    normalized = store.normalized_intensities(manifest.normalization_ids)
    if normalized.is_err():
        return normalized
    columns["norm_x"], columns["norm_y"] = normalized.unwrap()

    if store.version >= 4:
        baf = store.b_allele_freqs()
        if baf.is_err():
            return baf
        logr = store.logr_ratios()
        if logr.is_err():
            return logr
        columns["b_allele_freq"] = baf.unwrap()
        columns["logr_ratio"] = logr.unwrap()

    lengths = {name: len(values) for name, values in columns.items()}
    if len(set(lengths.values())) != 1:
        return Err(FormatError(f"Per-locus arrays differ in length: {lengths}"))

    return Ok(pd.DataFrame(columns))


def sample_summary(store: GenotypeCallStore) -> Result[dict, DecodeError]:
    """Sample-level metadata and QC metrics as a flat dictionary."""
    summary = {"version": store.version}
    accessors = {
        "sample_name": store.sample_name,
        "sample_plate": store.sample_plate,
        "sample_well": store.sample_well,
        "snp_manifest": store.snp_manifest,
        "cluster_file": store.cluster_file,
        "autocall_version": store.autocall_version,
        "autocall_date": store.autocall_date,
        "gender": store.gender,
        "call_rate": store.call_rate,
        "gc10": store.gc10,
        "gc50": store.gc50,
        "num_calls": store.num_calls,
        "num_no_calls": store.num_no_calls,
        "num_intensity_only": store.num_intensity_only,
    }
    for key, accessor in accessors.items():
        result = accessor()
        if result.is_err():
            return result
        summary[key] = result.unwrap()
    return Ok(summary)


def write_tsv(df: pd.DataFrame, output_path: Union[Path, str]) -> Result[Path, DecodeError]:
    """Write a DataFrame as TSV, creating parent directories."""
    try:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_path, sep="\t", index=False, na_rep="NaN")
    except OSError as e:
        return Err(StorageError(f"Failed to write {output_path}: {e}"))
    logger.info(f"Wrote {len(df)} rows to {output_path}")
    return Ok(output_path)
