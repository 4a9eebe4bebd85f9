"""
Test configuration and fixtures.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from binary_builders import (
    build_bpm,
    build_egt,
    build_gtc,
    gtc_fields,
    make_cluster,
    make_locus,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir)


@pytest.fixture
def sample_loci():
    """Three manifest loci in canonical order."""
    return [
        make_locus("rs1000", chrom="1", map_info="1500", address_a=111, address_b=0, assay_type=0),
        make_locus("rs2000", chrom="X", map_info="2500", address_a=222, address_b=333),
        make_locus("rs3000", chrom="MT", map_info="3500", address_a=444, address_b=555, assay_type=2),
    ]


@pytest.fixture
def sample_bpm(temp_dir, sample_loci):
    """A valid version 4 BPM file with three loci."""
    path = temp_dir / "test.bpm"
    path.write_bytes(build_bpm(sample_loci, norm_ids=[0, 0, 1]))
    return path


@pytest.fixture
def sample_clusters():
    return [make_cluster("rs1000", seed=0), make_cluster("rs2000", seed=1), make_cluster("rs3000", seed=2)]


@pytest.fixture
def sample_egt(temp_dir, sample_clusters):
    """A valid version 3 EGT file with three records."""
    path = temp_dir / "test.egt"
    path.write_bytes(build_egt(sample_clusters))
    return path


@pytest.fixture
def write_gtc(temp_dir):
    """Factory writing a GTC file: write_gtc(name, version=5, ploidy_type=1, **field_overrides)."""
    def _write(name="204126290052_R01C01.gtc", version=5, ploidy_type=1, fields=None):
        path = temp_dir / name
        toc_values = {1: 3, 2: 2}
        if ploidy_type is not None:
            toc_values[3] = ploidy_type
        path.write_bytes(build_gtc(fields if fields is not None else gtc_fields(), toc_values, version=version))
        return path
    return _write


@pytest.fixture
def sample_gtc(write_gtc):
    """A valid version 5 GTC file with three loci."""
    return write_gtc()
