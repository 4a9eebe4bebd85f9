"""
Tests for GTC genotype call file access.
"""

import io
import math

import numpy as np
import pytest

from beadarray.core.errors import (
    FormatError,
    StorageError,
    StoreClosedError,
    TruncatedReadError,
    VersionUnsupportedError,
)
from beadarray.core.models import ScannerData
from beadarray.core.transform import NormalizationTransform
from beadarray.formats.gtc import FieldId, GenotypeCallStore
from binary_builders import SAMPLE_TRANSFORMS, build_gtc, encode_string, f32, gtc_fields, i32


class NoIoHandle(io.RawIOBase):
    """Handle that fails the test on any read or seek."""

    def readable(self):
        return True

    def read(self, size=-1):
        raise AssertionError("unexpected read")

    def seek(self, offset, whence=0):
        raise AssertionError("unexpected seek")


@pytest.fixture
def store(sample_gtc):
    with GenotypeCallStore.open(sample_gtc).unwrap() as gtc:
        yield gtc


class TestOpen:
    """Tests for opening a GTC file."""

    def test_version_and_toc(self, store):
        assert store.version == 5
        assert store.toc[FieldId.NUM_SNPS] == 3
        with pytest.raises(TypeError):
            store.toc[1] = 4

    def test_bad_magic(self, temp_dir):
        path = temp_dir / "bad.gtc"
        path.write_bytes(build_gtc(gtc_fields(), {1: 3}, magic=b"GTC"))
        assert isinstance(GenotypeCallStore.open(path).unwrap_err(), FormatError)

    @pytest.mark.parametrize("version", [1, 2, 6])
    def test_unsupported_version(self, write_gtc, version):
        error = GenotypeCallStore.open(write_gtc(version=version)).unwrap_err()
        assert isinstance(error, VersionUnsupportedError)
        assert error.version == version

    def test_failed_open_closes_stream(self):
        stream = io.BytesIO(build_gtc(gtc_fields(), {1: 3}, version=2))
        assert GenotypeCallStore.open(stream).is_err()
        assert stream.closed

    def test_truncated_toc(self):
        data = build_gtc(gtc_fields(), {1: 3})
        result = GenotypeCallStore.open(io.BytesIO(data[:20]))
        assert isinstance(result.unwrap_err(), TruncatedReadError)

    def test_missing_file(self, temp_dir):
        result = GenotypeCallStore.open(temp_dir / "missing.gtc")
        assert isinstance(result.unwrap_err(), StorageError)

    def test_open_stream(self):
        data = build_gtc(gtc_fields(), {1: 3, 2: 2, 3: 1})
        with GenotypeCallStore.open(io.BytesIO(data)).unwrap() as gtc:
            assert gtc.path is None
            assert gtc.sample_name().unwrap() == "NA12878"


class TestLifecycle:
    """Tests for closing a store."""

    def test_accessors_fail_after_close(self, sample_gtc):
        gtc = GenotypeCallStore.open(sample_gtc).unwrap()
        gtc.close()
        assert gtc.closed
        assert isinstance(gtc.call_rate().unwrap_err(), StoreClosedError)
        assert isinstance(gtc.genotypes().unwrap_err(), StoreClosedError)
        assert isinstance(gtc.num_snps().unwrap_err(), StoreClosedError)
        assert isinstance(gtc.b_allele_freqs().unwrap_err(), StoreClosedError)

    def test_closed_error_is_storage_error(self, sample_gtc):
        gtc = GenotypeCallStore.open(sample_gtc).unwrap()
        gtc.close()
        assert isinstance(gtc.sample_name().unwrap_err(), StorageError)

    def test_close_is_idempotent(self, sample_gtc):
        gtc = GenotypeCallStore.open(sample_gtc).unwrap()
        gtc.close()
        gtc.close()
        assert "closed" in repr(gtc)

    def test_context_manager_closes(self, sample_gtc):
        with GenotypeCallStore.open(sample_gtc).unwrap() as gtc:
            assert not gtc.closed
        assert gtc.closed


class TestScalarFields:
    """Tests for header values and scalar metrics."""

    def test_toc_values(self, store):
        assert store.num_snps().unwrap() == 3
        assert store.ploidy().unwrap() == 2
        assert store.ploidy_type().unwrap() == 1

    def test_metrics(self, store):
        assert store.call_rate().unwrap() == 0.5
        assert store.logr_dev().unwrap() == 0.125
        assert store.gc10().unwrap() == 0.25
        assert store.gc50().unwrap() == 0.75

    def test_call_counts_follow_gc50(self, store):
        assert store.num_calls().unwrap() == 2
        assert store.num_no_calls().unwrap() == 1
        assert store.num_intensity_only().unwrap() == 0

    def test_gender(self, store):
        assert store.gender().unwrap() == "F"

    def test_missing_field(self, write_gtc):
        """A field absent from the table of contents is a storage error."""
        path = write_gtc(fields=gtc_fields(field_1011=None))
        with GenotypeCallStore.open(path).unwrap() as gtc:
            assert isinstance(gtc.gc50().unwrap_err(), StorageError)
            assert isinstance(gtc.num_calls().unwrap_err(), StorageError)
            assert gtc.call_rate().unwrap() == 0.5

    def test_missing_toc_value(self, write_gtc):
        with GenotypeCallStore.open(write_gtc(ploidy_type=None)).unwrap() as gtc:
            assert isinstance(gtc.ploidy_type().unwrap_err(), StorageError)

    def test_offset_outside_file(self, temp_dir):
        path = temp_dir / "offset.gtc"
        path.write_bytes(build_gtc(gtc_fields(field_1006=None), {1: 3, 1006: 1_000_000}))
        with GenotypeCallStore.open(path).unwrap() as gtc:
            assert isinstance(gtc.call_rate().unwrap_err(), StorageError)

    def test_offset_at_end_of_file(self, temp_dir):
        fields = gtc_fields(field_1006=None)
        size = len(build_gtc(fields, {1: 3, 1006: 0}))
        path = temp_dir / "eof.gtc"
        path.write_bytes(build_gtc(fields, {1: 3, 1006: size}))
        with GenotypeCallStore.open(path).unwrap() as gtc:
            assert isinstance(gtc.call_rate().unwrap_err(), TruncatedReadError)


class TestStringFields:
    """Tests for string fields."""

    def test_sample_metadata(self, store):
        assert store.sample_name().unwrap() == "NA12878"
        assert store.sample_plate().unwrap() == "Plate1"
        assert store.sample_well().unwrap() == "A01"
        assert store.cluster_file().unwrap() == "HumanCluster.egt"
        assert store.snp_manifest().unwrap() == "TEST-24v1-0_A1.bpm"
        assert store.slide_identifier().unwrap() == "204126290052"

    def test_autocall_metadata(self, store):
        assert store.imaging_date().unwrap() == "Monday, January 06, 2020 10:00:00 AM"
        assert store.autocall_date().unwrap() == "1/6/2020 10:00 AM"
        assert store.autocall_version().unwrap() == "3.0.0"

    def test_empty_sample_name_uses_file_name(self, write_gtc):
        path = write_gtc(fields=gtc_fields(field_10=encode_string("")))
        with GenotypeCallStore.open(path).unwrap() as gtc:
            assert gtc.sample_name().unwrap() == "204126290052_R01C01"

    def test_scanner_data(self, store):
        assert store.scanner_data().unwrap() == ScannerData("iScan", 580, 620, "3.3.28", "lab")


class TestArrays:
    """Tests for per-locus and control arrays."""

    def test_intensities(self, store):
        raw_x = store.raw_x_intensities().unwrap()
        assert raw_x.dtype == np.dtype("<i2")
        assert raw_x.tolist() == [0, 110, 1000]
        assert store.raw_y_intensities().unwrap().tolist() == [0, 60, 500]

    def test_controls_and_percentiles(self, store):
        assert store.control_x_intensities().unwrap().tolist() == [100, 200]
        assert store.control_y_intensities().unwrap().tolist() == [300, 400]
        assert store.percentiles_x().unwrap().tolist() == [1, 2, 3]
        assert store.percentiles_y().unwrap().tolist() == [4, 5, 6]

    def test_scores_and_copy_number(self, store):
        assert store.genotype_scores().unwrap().tolist() == [0.0, 0.5, 0.75]
        assert store.b_allele_freqs().unwrap().tolist() == [0.0, 0.5, 1.0]
        assert store.logr_ratios().unwrap().tolist() == [0.25, -0.5, 0.125]

    def test_genotypes_cached(self, store):
        first = store.genotypes().unwrap()
        assert first.tolist() == [0, 2, 8]
        assert store.genotypes().unwrap() is first
        with pytest.raises(ValueError):
            first[0] = 1

    def test_truncated_array(self, write_gtc):
        fields = gtc_fields()
        fields.pop(FieldId.GENOTYPE_SCORES)
        fields[FieldId.GENOTYPE_SCORES] = i32(5) + f32(0.5)
        with GenotypeCallStore.open(write_gtc(fields=fields)).unwrap() as gtc:
            error = gtc.genotype_scores().unwrap_err()
            assert isinstance(error, TruncatedReadError)
            assert (error.expected, error.got) == (20, 4)


class TestVersionGate:
    """B allele frequencies and LogR ratios need version 4 or later."""

    def test_version_3_file(self, write_gtc):
        with GenotypeCallStore.open(write_gtc(version=3)).unwrap() as gtc:
            assert isinstance(gtc.b_allele_freqs().unwrap_err(), VersionUnsupportedError)
            assert isinstance(gtc.logr_ratios().unwrap_err(), VersionUnsupportedError)
            assert gtc.call_rate().unwrap() == 0.5

    def test_gate_runs_before_io(self):
        gtc = GenotypeCallStore(NoIoHandle(), "x.gtc", 3, {1012: 100, 1013: 200})
        error = gtc.b_allele_freqs().unwrap_err()
        assert isinstance(error, VersionUnsupportedError)
        assert error.version == 3
        assert isinstance(gtc.logr_ratios().unwrap_err(), VersionUnsupportedError)

    def test_version_4_file(self, write_gtc):
        with GenotypeCallStore.open(write_gtc(version=4)).unwrap() as gtc:
            assert gtc.b_allele_freqs().is_ok()


class TestBaseCalls:
    """Tests for base call reconstruction."""

    def test_diploid_pairs_verbatim(self, store):
        assert store.base_calls().unwrap() == ["AG", "TC", "GA"]

    def test_non_diploid_uses_genotypes(self, write_gtc):
        with GenotypeCallStore.open(write_gtc(ploidy_type=2)).unwrap() as gtc:
            assert gtc.base_calls().unwrap() == ["-", "TC", "GGA"]

    def test_missing_ploidy_type_uses_genotypes(self, write_gtc):
        with GenotypeCallStore.open(write_gtc(ploidy_type=None)).unwrap() as gtc:
            assert gtc.base_calls().unwrap() == ["-", "TC", "GGA"]

    def test_diploid_requires_genotypes(self, write_gtc):
        path = write_gtc(ploidy_type=1, fields=gtc_fields(field_1002=None))
        with GenotypeCallStore.open(path).unwrap() as gtc:
            assert isinstance(gtc.base_calls().unwrap_err(), StorageError)

    def test_bad_genotype_code(self, write_gtc):
        fields = gtc_fields(field_1002=i32(3) + bytes([0, 2, 200]))
        with GenotypeCallStore.open(write_gtc(ploidy_type=2, fields=fields)).unwrap() as gtc:
            assert isinstance(gtc.base_calls().unwrap_err(), FormatError)


class TestNormalization:
    """Tests for transforms and normalized intensities."""

    def test_transforms(self, store):
        transforms = store.normalization_transforms().unwrap()
        assert transforms == [NormalizationTransform(*t) for t in SAMPLE_TRANSFORMS]

    def test_normalized_intensities(self, store):
        xs, ys = store.normalized_intensities([0, 0, 1]).unwrap()
        assert xs.dtype == np.float32
        assert math.isnan(xs[0]) and math.isnan(ys[0])
        assert (xs[1], ys[1]) == (50.0, 10.0)

        ex, ey = NormalizationTransform(*SAMPLE_TRANSFORMS[1]).normalize_intensities(1000, 500)
        assert xs[2] == pytest.approx(ex, rel=1e-6)
        assert ys[2] == pytest.approx(ey, rel=1e-6)

    def test_lookup_length_mismatch(self, store):
        assert isinstance(store.normalized_intensities([0, 0]).unwrap_err(), FormatError)

    def test_lookup_out_of_range(self, store):
        assert isinstance(store.normalized_intensities([0, 0, 2]).unwrap_err(), FormatError)
