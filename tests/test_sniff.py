"""
Tests for file type guessing.
"""

from beadarray.core.errors import StorageError
from beadarray.formats.sniff import guess_format, looks_binary


class TestLooksBinary:
    def test_text(self):
        assert not looks_binary(b"IlmnID,Name\r\nrs1,10\t\n")

    def test_nul_byte(self):
        assert looks_binary(b"gtc\x05\x00\x00")

    def test_empty(self):
        assert not looks_binary(b"")


class TestGuessFormat:
    """Tests for guess_format."""

    def test_bpm(self, sample_bpm):
        assert guess_format(sample_bpm).unwrap() == "bpm"

    def test_gtc(self, sample_gtc):
        assert guess_format(sample_gtc).unwrap() == "gtc"

    def test_egt(self, sample_egt):
        assert guess_format(sample_egt).unwrap() == "egt"

    def test_text_starting_with_gtc(self, temp_dir):
        """A listing of a gtc/ directory is not a GTC file."""
        path = temp_dir / "files.txt"
        path.write_text("gtc/204126290052_R01C01.gtc\ngtc/204126290052_R02C01.gtc\n")
        assert guess_format(path).unwrap() is None

    def test_unknown(self, temp_dir):
        path = temp_dir / "empty.bin"
        path.write_bytes(b"")
        assert guess_format(path).unwrap() is None

    def test_missing_file(self, temp_dir):
        assert isinstance(guess_format(temp_dir / "missing.gtc").unwrap_err(), StorageError)
