"""
Inspection and export commands.

  manifest - BPM or CSV manifest
  clusters - EGT cluster file
  sample   - GTC genotype call file
"""

import click
from pathlib import Path
from typing import Optional

from beadarray.cli.utils import (
    ProgressReporter,
    echo_error,
    echo_field,
    echo_info,
    echo_success,
    echo_warning,
    format_number,
)


def _fail(error: object) -> None:
    echo_error(str(error))
    raise SystemExit(1)


@click.command()
@click.option(
    "-i", "--input",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Manifest file (.bpm or .csv).",
)
@click.option(
    "-o", "--output",
    type=click.Path(path_type=Path),
    help="Write one row per locus to this TSV file.",
)
@click.pass_context
def manifest(ctx: click.Context, input: Path, output: Optional[Path]) -> None:
    """
    Summarize or export a probe manifest.

    Binary (.bpm) and text (.csv) manifests are both accepted; the format
    is chosen by file extension.
    """
    from beadarray.formats import read_bpm, read_csv_manifest
    from beadarray.util.convert import write_tsv

    options = ctx.obj["options"]
    quiet = ctx.obj.get("quiet", False)

    if input.suffix.lower() == ".csv":
        result = read_csv_manifest(input)
        if result.is_err():
            _fail(result.unwrap_err())
        decoded = result.unwrap()
        echo_field("loci", format_number(len(decoded)))
    else:
        with ProgressReporter(f"Decoding {input.name}", quiet=quiet) as progress:
            result = read_bpm(input, options, progress=progress)
        if result.is_err():
            _fail(result.unwrap_err())
        decoded = result.unwrap()
        echo_field("manifest", decoded.manifest_name)
        echo_field("version", decoded.version)
        echo_field("loci", format_number(decoded.num_loci))
        duplicates = decoded.num_loci - len(decoded.locus_entries)
        if duplicates:
            echo_warning(f"{format_number(duplicates)} duplicate probe names")

    if output:
        written = write_tsv(decoded.to_frame(), output)
        if written.is_err():
            _fail(written.unwrap_err())
        echo_success(f"Wrote {output}")


@click.command()
@click.option(
    "-i", "--input",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Cluster file (.egt).",
)
@click.option(
    "-o", "--output",
    type=click.Path(path_type=Path),
    help="Write one row per probe to this TSV file.",
)
@click.pass_context
def clusters(ctx: click.Context, input: Path, output: Optional[Path]) -> None:
    """
    Summarize or export an EGT cluster file.
    """
    from beadarray.formats import read_egt
    from beadarray.util.convert import write_tsv

    result = read_egt(input, ctx.obj["options"])
    if result.is_err():
        _fail(result.unwrap_err())
    cluster_set = result.unwrap()

    echo_field("manifest", cluster_set.manifest_name)
    echo_field("gencall version", cluster_set.gencall_version)
    echo_field("cluster version", cluster_set.cluster_version)
    echo_field("created", cluster_set.date_created)
    echo_field("records", format_number(len(cluster_set)))

    if output:
        written = write_tsv(cluster_set.to_frame(), output)
        if written.is_err():
            _fail(written.unwrap_err())
        echo_success(f"Wrote {output}")


@click.command()
@click.option(
    "-i", "--input",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Genotype call file (.gtc).",
)
@click.option(
    "-m", "--manifest", "manifest_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="BPM manifest the sample was called against (required with --output).",
)
@click.option(
    "-o", "--output",
    type=click.Path(path_type=Path),
    help="Write per-locus calls and intensities to this TSV file.",
)
@click.pass_context
def sample(ctx: click.Context, input: Path, manifest_path: Optional[Path], output: Optional[Path]) -> None:
    """
    Summarize or export a GTC genotype call file.

    \b
    Example:
      beadarray sample -i 2049_R01C01.gtc
      beadarray sample -i 2049_R01C01.gtc -m GSA.bpm -o 2049_R01C01.tsv
    """
    from beadarray.formats import GenotypeCallStore, read_bpm
    from beadarray.util.convert import sample_frame, sample_summary, write_tsv

    if output and not manifest_path:
        echo_error("--manifest is required with --output")
        raise SystemExit(1)

    options = ctx.obj["options"]
    opened = GenotypeCallStore.open(input, options)
    if opened.is_err():
        _fail(opened.unwrap_err())

    with opened.unwrap() as store:
        summary = sample_summary(store)
        if summary.is_err():
            _fail(summary.unwrap_err())
        for key, value in summary.unwrap().items():
            echo_field(key.replace("_", " "), value)

        if output:
            echo_info(f"Loading manifest {manifest_path.name}")
            loaded = read_bpm(manifest_path, options)
            if loaded.is_err():
                _fail(loaded.unwrap_err())
            frame = sample_frame(store, loaded.unwrap())
            if frame.is_err():
                _fail(frame.unwrap_err())
            written = write_tsv(frame.unwrap(), output)
            if written.is_err():
                _fail(written.unwrap_err())
            echo_success(f"Wrote {output}")
