"""K-mer encoding of nucleotide oligos."""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np

from kmertax.core.utils import check_kmer_params
from kmertax.models.errors import InvalidParameterError

logger = logging.getLogger(__name__)

# 2-bit nucleotide codes; T and U share a code so DNA and RNA index alike
NUC_CODES = {'A': 0, 'T': 1, 'U': 1, 'C': 2, 'G': 3}
DNA_ALPHABET = 'ATCG'
RNA_ALPHABET = 'AUCG'
SCORE_MIN = 0
SCORE_MAX = 40

# Byte lookup table for vectorized encoding, -1 marks an unencodable residue
_CODE_TABLE = np.full(256, -1, dtype=np.int8)
for _nuc, _code in NUC_CODES.items():
    _CODE_TABLE[ord(_nuc)] = _code
    _CODE_TABLE[ord(_nuc.lower())] = _code

EMPTY_KMERS = np.empty(0, dtype=np.uint32)

def encode_oligo(oligo: str) -> Optional[int]:
    """
    Encode an oligo as an integer with 2 bits per nucleotide, first base most significant.

    Args:
        oligo: Nucleotide string (DNA or RNA, any case)

    Returns:
        Encoded value, or None if the oligo is empty or holds a residue outside ATUCG
    """
    if not oligo:
        return None
    value = 0
    for nuc in oligo:
        code = NUC_CODES.get(nuc.upper())
        if code is None:
            return None
        value = (value << 2) | code
    return value

def decode_kmer(kmer: int, kmer_size: int, rna: bool = False) -> str:
    """
    Decode an encoded k-mer back to its oligo.

    Args:
        kmer: Encoded k-mer
        kmer_size: Length of the oligo
        rna: Decode code 01 as U instead of T

    Returns:
        Upper case oligo

    Raises:
        InvalidParameterError: If kmer does not fit in kmer_size nucleotides
    """
    if kmer_size < 1 or not 0 <= kmer < 4 ** kmer_size:
        raise InvalidParameterError(f"Cannot decode {kmer} as a {kmer_size}-mer")
    alphabet = RNA_ALPHABET if rna else DNA_ALPHABET
    nucs = []
    for shift in range(2 * (kmer_size - 1), -1, -2):
        nucs.append(alphabet[(kmer >> shift) & 3])
    return ''.join(nucs)

def extract_kmers(
    sequence: str,
    kmer_size: int,
    step_size: int = 1,
    qual: Optional[Sequence[int]] = None,
    score_min: Optional[int] = None
) -> np.ndarray:
    """
    Extract the distinct encoded k-mers of a sequence.

    Windows start at offsets 0, step_size, 2 * step_size, ... up to
    len(sequence) - kmer_size. A window holding a residue outside ATUCG, or a
    base scoring below score_min when qualities are given, is skipped.

    Args:
        sequence: Nucleotide sequence
        kmer_size: Window length (1-12)
        step_size: Window increment (1-12)
        qual: Optional Phred scores, one per residue
        score_min: Minimum Phred score accepted inside a window

    Returns:
        Sorted uint32 array of distinct k-mers

    Raises:
        InvalidParameterError: If parameters are out of range or qualities don't match the sequence
    """
    check_kmer_params(kmer_size, step_size)

    seq_len = len(sequence)
    if seq_len < kmer_size:
        return EMPTY_KMERS

    raw = np.frombuffer(str(sequence).encode('ascii', errors='replace'), dtype=np.uint8)
    codes = _CODE_TABLE[raw]
    bad = codes < 0

    if qual is not None and score_min is not None:
        if not SCORE_MIN <= score_min <= SCORE_MAX:
            raise InvalidParameterError(
                f"score minimum: {score_min} out of range {SCORE_MIN}..{SCORE_MAX}"
            )
        scores = np.asarray(qual, dtype=np.int64)
        if scores.shape != bad.shape:
            raise InvalidParameterError(
                f"Quality length {scores.size} does not match sequence length {seq_len}"
            )
        bad |= scores < score_min

    # Count of rejected bases per window from a running total
    bad_total = np.concatenate(([0], np.cumsum(bad, dtype=np.int64)))
    starts = np.arange(0, seq_len - kmer_size + 1, step_size)
    starts = starts[bad_total[starts + kmer_size] == bad_total[starts]]
    if starts.size == 0:
        return EMPTY_KMERS

    codes = np.where(bad, 0, codes).astype(np.uint32)
    kmers = np.zeros(starts.size, dtype=np.uint32)
    for offset in range(kmer_size):
        kmers = (kmers << 2) | codes[starts + offset]

    return np.unique(kmers)

def to_oligos(kmers: Union[np.ndarray, List[int]], kmer_size: int, rna: bool = False) -> List[str]:
    """Decode a collection of k-mers, mainly for diagnostics."""
    return [decode_kmer(int(kmer), kmer_size, rna) for kmer in kmers]
