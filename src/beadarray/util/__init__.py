"""
Utility modules.

  convert - DataFrame views and TSV export of decoded files
"""

from beadarray.util.convert import sample_frame, sample_summary, write_tsv

__all__ = [
    "sample_frame",
    "sample_summary",
    "write_tsv",
]
