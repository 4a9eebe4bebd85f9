"""
Genotype codes and base calls.

A GTC file stores one byte per locus indexing GENOTYPE_CODES, the A/B
allele composition of the call. Code 0 is a no call and code 4 a null
call; the rest cover ploidies one through eight.
"""

from __future__ import annotations

from beadarray.core.result import Result, Ok, Err
from beadarray.core.errors import DecodeError, FormatError

GENOTYPE_CODES: tuple[str, ...] = (
    "NC", "AA", "AB", "BB", "NULL", "A", "B",
    "AAA", "AAB", "ABB", "BBB",
    "AAAA", "AAAB", "AABB", "ABBB", "BBBB",
    "AAAAA", "AAAAB", "AAABB", "AABBB", "ABBBB", "BBBBB",
    "AAAAAA", "AAAAAB", "AAAABB", "AAABBB", "AABBBB", "ABBBBB", "BBBBBB",
    "AAAAAAA", "AAAAAAB", "AAAAABB", "AAAABBB", "AAABBBB", "AABBBBB", "ABBBBBB", "BBBBBBB",
    "AAAAAAAA", "AAAAAAAB", "AAAAAABB", "AAAAABBB", "AAAABBBB", "AAABBBBB", "AABBBBBB",
    "ABBBBBBB", "BBBBBBBB",
)

NO_CALL_CODES = frozenset({"NC", "NULL"})

# Placeholder base call for no-call and null genotypes
NO_CALL = "-"


def genotype_for_code(code: int) -> Result[str, DecodeError]:
    """Look up the allele composition for a genotype code."""
    if not 0 <= code < len(GENOTYPE_CODES):
        return Err(FormatError(f"Genotype code {code} outside the {len(GENOTYPE_CODES)}-entry table"))
    return Ok(GENOTYPE_CODES[code])


def top_strand_call(code: int, pair: str) -> Result[str, DecodeError]:
    """
    Build the base call for one locus.

    Each 'A' in the composition is replaced with the first letter of
    `pair` and each 'B' with the second.

    Example:
        >>> top_strand_call(8, "GA").unwrap()  # AAB
        'GGA'
        >>> top_strand_call(0, "GA").unwrap()
        '-'
    """
    genotype = genotype_for_code(code)
    if genotype.is_err():
        return genotype
    composition = genotype.unwrap()
    if composition in NO_CALL_CODES:
        return Ok(NO_CALL)
    if len(pair) != 2:
        return Err(FormatError(f"Base call pair must have 2 letters, got {pair!r}"))
    first, second = pair
    return Ok("".join(first if allele == "A" else second for allele in composition))
