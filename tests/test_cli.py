"""
Tests for the beadarray command line interface.
"""

import math

import pandas as pd
import pytest
from click.testing import CliRunner

from beadarray import __version__
from beadarray.cli.main import cli
from binary_builders import build_egt


@pytest.fixture
def runner():
    return CliRunner()


class TestRootCommand:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self, runner):
        result = runner.invoke(cli, ["info"])
        assert result.exit_code == 0
        assert "numpy" in result.output

    def test_bad_config(self, runner, temp_dir):
        config = temp_dir / "config.yaml"
        config.write_text("decode:\n  unknown_option: 1\n")
        result = runner.invoke(cli, ["-c", str(config), "info"])
        assert result.exit_code == 1
        assert "unknown_option" in result.output


class TestManifestCommand:
    """Tests for `beadarray manifest`."""

    def test_summary(self, runner, sample_bpm):
        result = runner.invoke(cli, ["manifest", "-i", str(sample_bpm)])
        assert result.exit_code == 0
        assert "TEST-24v1-0_A1.bpm" in result.output
        assert "loci: 3" in result.output

    def test_export(self, runner, sample_bpm, temp_dir):
        output = temp_dir / "loci.tsv"
        result = runner.invoke(cli, ["-q", "manifest", "-i", str(sample_bpm), "-o", str(output)])
        assert result.exit_code == 0
        df = pd.read_csv(output, sep="\t")
        assert list(df["norm_id"]) == [0, 0, 1]

    def test_csv_manifest(self, runner, temp_dir):
        path = temp_dir / "manifest.csv"
        path.write_text("[Assay]\nIlmnID,Name,MapInfo\nrs1-138,rs1,100\n[Controls]\n")
        result = runner.invoke(cli, ["manifest", "-i", str(path)])
        assert result.exit_code == 0
        assert "loci: 1" in result.output

    def test_corrupt_manifest(self, runner, temp_dir):
        path = temp_dir / "bad.bpm"
        path.write_bytes(b"XYZ\x01")
        result = runner.invoke(cli, ["manifest", "-i", str(path)])
        assert result.exit_code == 1
        assert "not BPM format" in result.output


class TestClustersCommand:
    """Tests for `beadarray clusters`."""

    def test_summary_and_export(self, runner, sample_egt, temp_dir):
        output = temp_dir / "clusters.tsv"
        result = runner.invoke(cli, ["clusters", "-i", str(sample_egt), "-o", str(output)])
        assert result.exit_code == 0
        assert "records: 3" in result.output
        assert len(pd.read_csv(output, sep="\t")) == 3

    def test_count_check_from_config(self, runner, temp_dir, sample_clusters):
        egt = temp_dir / "mismatch.egt"
        egt.write_bytes(build_egt(sample_clusters, count_block=[(0, 0, 0)] * 3))

        failed = runner.invoke(cli, ["clusters", "-i", str(egt)])
        assert failed.exit_code == 1

        config = temp_dir / "config.yaml"
        config.write_text("decode:\n  verify_cluster_counts: false\n")
        passed = runner.invoke(cli, ["-c", str(config), "clusters", "-i", str(egt)])
        assert passed.exit_code == 0


class TestSampleCommand:
    """Tests for `beadarray sample`."""

    def test_summary(self, runner, sample_gtc):
        result = runner.invoke(cli, ["sample", "-i", str(sample_gtc)])
        assert result.exit_code == 0
        assert "sample name: NA12878" in result.output
        assert "call rate: 0.5" in result.output

    def test_output_requires_manifest(self, runner, sample_gtc, temp_dir):
        result = runner.invoke(cli, ["sample", "-i", str(sample_gtc), "-o", str(temp_dir / "calls.tsv")])
        assert result.exit_code == 1
        assert "--manifest" in result.output

    def test_export(self, runner, sample_gtc, sample_bpm, temp_dir):
        output = temp_dir / "calls.tsv"
        result = runner.invoke(
            cli, ["sample", "-i", str(sample_gtc), "-m", str(sample_bpm), "-o", str(output)]
        )
        assert result.exit_code == 0
        df = pd.read_csv(output, sep="\t")
        assert list(df["base_call"]) == ["AG", "TC", "GA"]
        assert math.isnan(df["norm_x"][0])
        assert df["norm_x"][1] == 50.0
