"""
Main CLI entry point for beadarray.

Defines the root command group and registers the inspection commands.
Uses Click framework for argument parsing and help generation.
"""

import logging

import click

from beadarray import __version__


# Custom Click context settings for consistent behavior
CONTEXT_SETTINGS = dict(
    help_option_names=["-h", "--help"],
    max_content_width=120,
)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "-V", "--version", prog_name="beadarray")
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output with detailed logging.",
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress all output except errors.",
)
@click.option(
    "-c", "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file with a 'decode' options section.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config: str) -> None:
    """
    beadarray: read Illumina bead-array genotyping files.

    \b
    Commands:
      manifest  - Summarize or export a BPM/CSV manifest
      clusters  - Summarize or export an EGT cluster file
      sample    - Summarize or export a GTC genotype call file
      info      - Version and environment information

    \b
    Quick start:
      beadarray manifest -i GSA.bpm -o loci.tsv
      beadarray sample -i 2049_R01C01.gtc -m GSA.bpm -o calls.tsv
    """
    from beadarray.config import DEFAULT_OPTIONS, load_options
    from beadarray.cli.utils import echo_error

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if verbose and not quiet:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    elif quiet:
        logging.basicConfig(level=logging.ERROR)

    options = DEFAULT_OPTIONS
    if config:
        loaded = load_options(config)
        if loaded.is_err():
            echo_error(loaded.unwrap_err())
            raise SystemExit(1)
        options = loaded.unwrap()
    ctx.obj["options"] = options


from beadarray.cli.inspect import manifest, clusters, sample

cli.add_command(manifest)
cli.add_command(clusters)
cli.add_command(sample)


@cli.command()
def info() -> None:
    """
    Display version and environment information.
    """
    import sys
    import platform

    click.echo(f"beadarray version: {__version__}")
    click.echo(f"Python version: {sys.version}")
    click.echo(f"Platform: {platform.platform()}")

    click.echo("\nInstalled dependencies:")

    dependencies = {
        "numpy": "numpy",
        "pandas": "pandas",
        "click": "click",
        "pyyaml": "yaml",
    }

    for name, import_name in dependencies.items():
        try:
            module = __import__(import_name)
            version = getattr(module, "__version__", "unknown")
            click.echo(f"  {name}: {version}")
        except ImportError:
            click.echo(f"  {name}: not installed")


if __name__ == "__main__":
    cli()
