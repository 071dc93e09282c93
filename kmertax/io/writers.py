"""File writers for kmertax."""

import logging
from pathlib import Path
from typing import List, Dict, Tuple, Iterable, Optional

import numpy as np
import pandas as pd

from kmertax.models.errors import IndexFormatError, InputError
from kmertax.models.taxonomic import Rank, TaxonomyAssignment
from kmertax.core.utils import INDEX_MAGIC, INDEX_FORMAT_VERSION

logger = logging.getLogger(__name__)

TAX_INDEX_COLUMNS = ['NODE_ID', 'RANK', 'NAME', 'PARENT_ID', 'SEQ_ID']
KMER_INDEX_COLUMNS = ['RANK', 'KMER', 'NODES']

def index_header(kmer_size: int, step_size: int) -> str:
    """First line of both index files."""
    return f"{INDEX_MAGIC}\tformat={INDEX_FORMAT_VERSION}\tkmer_size={kmer_size}\tstep_size={step_size}\n"

def write_tax_index(index, path: Path) -> pd.DataFrame:
    """
    Write the node table of an index.

    Args:
        index: TaxonomyIndex to write
        path: Output path

    Returns:
        DataFrame of the node table

    Raises:
        IndexFormatError: If the file cannot be written
    """
    nodes_df = pd.DataFrame(
        [node.as_record() for node in index.tree],
        columns=TAX_INDEX_COLUMNS
    )
    nodes_df['PARENT_ID'] = nodes_df['PARENT_ID'].astype('Int64')

    try:
        with open(path, 'w', encoding='utf8', newline='') as handle:
            handle.write(index_header(index.kmer_size, index.step_size))
            nodes_df.to_csv(handle, sep='\t', index=False)
    except OSError as e:
        raise IndexFormatError(f"Error writing tax index {path}: {str(e)}")

    logger.info(f"Wrote {len(nodes_df)} nodes to {path}")
    return nodes_df

def write_kmer_index(index, path: Path) -> pd.DataFrame:
    """
    Write the inverted (rank, kmer) -> node ids index.

    Rows are grouped by rank from Kingdom down and sorted by k-mer; node ids
    are joined with ';'.

    Args:
        index: TaxonomyIndex to write
        path: Output path

    Returns:
        DataFrame of the k-mer index

    Raises:
        IndexFormatError: If the file cannot be written
    """
    frames = []
    for rank in Rank:
        rank_index = index.rank_index(rank)
        if not len(rank_index):
            continue
        nodes = [';'.join(map(str, ids.tolist())) for _, ids in rank_index.rows()]
        frames.append(pd.DataFrame({
            'RANK': rank.tag,
            'KMER': rank_index.kmers.astype(np.int64),
            'NODES': nodes,
        }))

    if frames:
        kmers_df = pd.concat(frames, ignore_index=True)
    else:
        kmers_df = pd.DataFrame(columns=KMER_INDEX_COLUMNS)

    try:
        with open(path, 'w', encoding='utf8', newline='') as handle:
            handle.write(index_header(index.kmer_size, index.step_size))
            kmers_df.to_csv(handle, sep='\t', index=False)
    except OSError as e:
        raise IndexFormatError(f"Error writing kmer index {path}: {str(e)}")

    logger.info(f"Wrote {len(kmers_df)} (rank, kmer) entries to {path}")
    return kmers_df

def assignments_to_df(assignments: Iterable[TaxonomyAssignment]) -> pd.DataFrame:
    """Tabulate assignments, one row per query."""
    rows = [assignment.as_dict() for assignment in assignments]
    if not rows:
        return pd.DataFrame(columns=list(TaxonomyAssignment().as_dict().keys()))
    return pd.DataFrame(rows)

def write_assignments(
    assignments: Iterable[TaxonomyAssignment],
    tsv_output_path: Path
) -> pd.DataFrame:
    """
    Write classification results as a tab separated table.

    Args:
        assignments: Classification results
        tsv_output_path: Path to output .tsv file

    Returns:
        DataFrame written

    Raises:
        InputError: If there's an issue with creating the output
    """
    try:
        results_df = assignments_to_df(assignments)
        results_df.to_csv(tsv_output_path, sep='\t', index=False)
        logger.info(f"Wrote {len(results_df)} assignments to {tsv_output_path}")
        return results_df
    except Exception as e:
        raise InputError(f"Error writing assignments: {str(e)}")
