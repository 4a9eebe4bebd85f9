"""
File format readers.

  bpm           - binary probe manifest
  egt           - cluster definition file
  gtc           - per-sample genotype calls (random access)
  csv_manifest  - text manifest
  sniff         - file type guessing
"""

from beadarray.formats.bpm import read_bpm
from beadarray.formats.egt import read_egt
from beadarray.formats.gtc import GenotypeCallStore, FieldId
from beadarray.formats.csv_manifest import read_csv_manifest, CsvManifest, CsvLocusEntry
from beadarray.formats.sniff import guess_format

__all__ = [
    "read_bpm",
    "read_egt",
    "GenotypeCallStore",
    "FieldId",
    "read_csv_manifest",
    "CsvManifest",
    "CsvLocusEntry",
    "guess_format",
]
