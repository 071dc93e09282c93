"""File format parsers for kmertax."""

import gzip
import logging
from pathlib import Path
from typing import List, Dict, Tuple, Optional, Iterator, NamedTuple, TextIO
from abc import ABC, abstractmethod

import numpy as np
import pandas as pd
from Bio import SeqIO

from kmertax.models.errors import (
    InputError, IndexFormatError, IncompatibleIndexVersionError,
    InvalidParameterError, TaxonomyError
)
from kmertax.models.taxonomic import Rank, TaxNode, RANK_TAGS
from kmertax.core.taxonomy import TaxonomyTree
from kmertax.core.database import RankKmerIndex
from kmertax.core.utils import INDEX_MAGIC, INDEX_FORMAT_VERSION, check_kmer_params
from kmertax.io.writers import TAX_INDEX_COLUMNS, KMER_INDEX_COLUMNS

logger = logging.getLogger(__name__)

class SequenceRecord(NamedTuple):
    """Sequence name, residues and optional Phred scores."""
    name: str
    seq: str
    qual: Optional[List[int]] = None

class Parser(ABC):
    """Base parser class for different file formats."""

    @abstractmethod
    def parse(self, path: Path):
        """Parse file at the given path.

        Args:
            path: Path to file

        Returns:
            Parsed data
        """
        pass

def read_index_header(handle: TextIO, path: Path) -> Tuple[int, int]:
    """
    Read and check the header line of an index file.

    Args:
        handle: Open index file positioned at its start
        path: Path of the file, for messages

    Returns:
        Tuple of (kmer_size, step_size)

    Raises:
        IncompatibleIndexVersionError: If the header or format version is not recognized
    """
    line = handle.readline().rstrip('\r\n')
    fields = line.split('\t')
    if fields[0] != INDEX_MAGIC:
        raise IncompatibleIndexVersionError(f"Unrecognized index header in {path}: {line!r}")

    try:
        params = dict(field.split('=', 1) for field in fields[1:])
    except ValueError:
        raise IncompatibleIndexVersionError(f"Malformed index header in {path}: {line!r}")

    if params.get('format') != str(INDEX_FORMAT_VERSION):
        raise IncompatibleIndexVersionError(
            f"Unsupported index format {params.get('format')!r} in {path}, expected {INDEX_FORMAT_VERSION}"
        )

    try:
        kmer_size = int(params['kmer_size'])
        step_size = int(params['step_size'])
        check_kmer_params(kmer_size, step_size)
    except (KeyError, ValueError, InvalidParameterError) as e:
        raise IncompatibleIndexVersionError(f"Bad k-mer parameters in header of {path}: {str(e)}")

    return kmer_size, step_size

class TaxIndexParser(Parser):
    """Parser for the node table of an index."""

    def parse(self, path: Path) -> Tuple[TaxonomyTree, Tuple[int, int]]:
        """Parse a node table into a taxonomy tree.

        Args:
            path: Path to <prefix>_tax_index.dat

        Returns:
            Tuple of (TaxonomyTree, (kmer_size, step_size))

        Raises:
            IndexFormatError: If the node table cannot be read
        """
        with open(path, encoding='utf8', newline='') as handle:
            params = read_index_header(handle, path)
            try:
                nodes_df = pd.read_csv(handle, sep='\t', dtype=str, keep_default_na=False)
            except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                raise IndexFormatError(f"Error parsing tax index {path}: {str(e)}")

        if list(nodes_df.columns) != TAX_INDEX_COLUMNS:
            raise IndexFormatError(f"Unexpected columns in {path}: {list(nodes_df.columns)}")

        tree = TaxonomyTree()
        try:
            for node_id, tag, name, parent_id, seq_id in nodes_df.itertuples(index=False, name=None):
                tree.add_node(TaxNode(
                    int(node_id),
                    Rank.from_tag(tag),
                    name,
                    int(parent_id) if parent_id else None,
                    seq_id or None
                ))
        except (ValueError, KeyError, TaxonomyError) as e:
            raise IndexFormatError(f"Error parsing tax index {path}: {str(e)}")

        logger.debug(f"Read {len(tree)} nodes from {path}")
        return tree, params

class KmerIndexParser(Parser):
    """Parser for the inverted k-mer index."""

    def parse(self, path: Path, n_nodes: int) -> Tuple[Dict[Rank, RankKmerIndex], Tuple[int, int]]:
        """Parse a k-mer index file into per-rank inverted indices.

        Args:
            path: Path to <prefix>_kmer_index.dat
            n_nodes: Number of nodes in the matching node table

        Returns:
            Tuple of ({rank: RankKmerIndex}, (kmer_size, step_size))

        Raises:
            IndexFormatError: If the k-mer index cannot be read or references unknown nodes
        """
        with open(path, encoding='utf8', newline='') as handle:
            params = read_index_header(handle, path)
            try:
                kmers_df = pd.read_csv(
                    handle,
                    sep='\t',
                    dtype={'RANK': str, 'KMER': np.int64, 'NODES': str},
                    keep_default_na=False
                )
            except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
                raise IndexFormatError(f"Error parsing kmer index {path}: {str(e)}")

        if list(kmers_df.columns) != KMER_INDEX_COLUMNS:
            raise IndexFormatError(f"Unexpected columns in {path}: {list(kmers_df.columns)}")

        unknown = set(kmers_df['RANK']) - set(RANK_TAGS)
        if unknown:
            raise IndexFormatError(f"Unknown ranks {sorted(unknown)} in {path}")

        kmer_limit = 4 ** params[0]
        rank_indices = {}
        for rank in Rank:
            rank_df = kmers_df[kmers_df['RANK'] == rank.tag]
            kmers = rank_df['KMER'].to_numpy(dtype=np.int64)
            if kmers.size and (kmers.min() < 0 or kmers.max() >= kmer_limit):
                raise IndexFormatError(f"K-mer out of range for kmer_size={params[0]} in {path}")
            if np.any(np.diff(kmers) <= 0):
                raise IndexFormatError(f"K-mers of rank {rank.label} not strictly increasing in {path}")

            try:
                node_lists = [np.array(nodes.split(';'), dtype=np.int64) for nodes in rank_df['NODES']]
            except ValueError as e:
                raise IndexFormatError(f"Bad node list in {path}: {str(e)}")
            if any(ids.size and (ids.min() < 0 or ids.max() >= n_nodes) for ids in node_lists):
                raise IndexFormatError(f"Node id out of range in {path}")

            rank_indices[rank] = RankKmerIndex.from_lists(rank, kmers.astype(np.uint32), node_lists, n_nodes)

        logger.debug(f"Read {len(kmers_df)} (rank, kmer) entries from {path}")
        return rank_indices, params

class SequenceParser(Parser):
    """Parser for sequence files (FASTA/FASTQ)."""

    def parse(self, path: Path, format: Optional[str] = None) -> Iterator[SequenceRecord]:
        """Stream records of a FASTA/FASTQ file.

        Args:
            path: Path to sequence file, optionally gzipped
            format: Optional format type ('fasta' or 'fastq'). If None, inferred from extension.

        Returns:
            Iterator of SequenceRecord; the name is the full header line

        Raises:
            InputError: If there's an issue with the sequence file
        """
        path = Path(path)
        if format is None:
            format = sequence_format(path)

        # Determine how to open the file based on extension
        if str(path).endswith(".gz"):
            open_func = lambda p: gzip.open(p, "rt", encoding="utf-8")
        else:
            open_func = lambda p: open(p, "r", encoding="utf-8")

        try:
            with open_func(path) as file:
                for record in SeqIO.parse(file, format):
                    qual = record.letter_annotations.get('phred_quality')
                    yield SequenceRecord(record.description, str(record.seq), qual)
        except (OSError, ValueError, UnicodeDecodeError) as e:
            raise InputError(f"Error parsing sequence file {path}: {str(e)}")

def sequence_format(path: Path) -> str:
    """
    Infer 'fasta' or 'fastq' from a file name, ignoring a .gz suffix.

    Raises:
        InputError: If the format cannot be determined
    """
    suffixes = [s.lower() for s in Path(path).suffixes]
    if suffixes and suffixes[-1] == '.gz':
        suffixes = suffixes[:-1]
    suffix = suffixes[-1] if suffixes else ''
    if suffix in ('.fasta', '.fa', '.fna', '.fas'):
        return 'fasta'
    if suffix in ('.fastq', '.fq'):
        return 'fastq'
    raise InputError(f"Couldn't determine format for file: {path}")

def read_tax_index(path: Path) -> Tuple[TaxonomyTree, Tuple[int, int]]:
    """Parse a node table. Wrapper for TaxIndexParser."""
    return TaxIndexParser().parse(path)

def read_kmer_index(path: Path, n_nodes: int) -> Tuple[Dict[Rank, RankKmerIndex], Tuple[int, int]]:
    """Parse a k-mer index file. Wrapper for KmerIndexParser."""
    return KmerIndexParser().parse(path, n_nodes)

def read_sequences(path: Path, format: Optional[str] = None) -> Iterator[SequenceRecord]:
    """Stream FASTA/FASTQ records. Wrapper for SequenceParser."""
    return SequenceParser().parse(path, format)
