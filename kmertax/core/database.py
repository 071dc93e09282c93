"""Taxonomy k-mer index aggregate and its persistence."""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Dict, Tuple, Set, Optional, Iterator

import numpy as np
from scipy import sparse

from kmertax.models.errors import IndexFormatError, OutputExistsError, ParameterMismatchError
from kmertax.models.taxonomic import Rank, TaxNode
from kmertax.core.taxonomy import TaxonomyTree
from kmertax.core.utils import DEFAULT_PREFIX, check_kmer_params, index_paths

logger = logging.getLogger(__name__)

class RankKmerIndex:
    """
    Inverted k-mer index for the nodes of a single rank.

    Row i of the CSR matrix lists the ids of the nodes holding kmers[i];
    columns span every node id in the index.
    """

    def __init__(self, rank: Rank, kmers: np.ndarray, matrix: sparse.csr_matrix):
        self.rank = rank
        self.kmers = kmers
        self.matrix = matrix
        self._columns = None

    @classmethod
    def empty(cls, rank: Rank, n_nodes: int) -> 'RankKmerIndex':
        return cls(
            rank,
            np.empty(0, dtype=np.uint32),
            sparse.csr_matrix((0, n_nodes), dtype=np.int32)
        )

    @classmethod
    def from_nodes(cls, rank: Rank, nodes: List[TaxNode], n_nodes: int) -> 'RankKmerIndex':
        """
        Derive the inverted index from the k-mer sets of nodes of one rank.

        Args:
            rank: Rank shared by all nodes
            nodes: Nodes whose k-mer sets are inverted
            n_nodes: Total number of nodes in the index

        Returns:
            RankKmerIndex for the rank
        """
        kmer_parts, id_parts = [], []
        for node in nodes:
            if node.kmers:
                kmers = np.fromiter(node.kmers, dtype=np.uint32, count=len(node.kmers))
                kmer_parts.append(kmers)
                id_parts.append(np.full(kmers.size, node.node_id, dtype=np.int64))

        if not kmer_parts:
            return cls.empty(rank, n_nodes)

        all_kmers = np.concatenate(kmer_parts)
        all_ids = np.concatenate(id_parts)
        keys, rows = np.unique(all_kmers, return_inverse=True)
        matrix = sparse.csr_matrix(
            (np.ones(all_kmers.size, dtype=np.int32), (rows.ravel(), all_ids)),
            shape=(keys.size, n_nodes)
        )
        matrix.sort_indices()
        return cls(rank, keys, matrix)

    @classmethod
    def from_lists(cls, rank: Rank, kmers: np.ndarray, node_lists: List[np.ndarray],
                   n_nodes: int) -> 'RankKmerIndex':
        """
        Build from parallel k-mer and node id lists as read from disk.

        Args:
            rank: Rank of the nodes
            kmers: Strictly increasing k-mers
            node_lists: Node ids holding each k-mer
            n_nodes: Total number of nodes in the index

        Returns:
            RankKmerIndex for the rank
        """
        if len(kmers) == 0:
            return cls.empty(rank, n_nodes)
        lengths = np.fromiter((len(ids) for ids in node_lists), dtype=np.int64, count=len(node_lists))
        indptr = np.concatenate(([0], np.cumsum(lengths)))
        indices = np.concatenate(node_lists).astype(np.int32)
        matrix = sparse.csr_matrix(
            (np.ones(indices.size, dtype=np.int32), indices, indptr),
            shape=(len(kmers), n_nodes)
        )
        matrix.sort_indices()
        return cls(rank, np.asarray(kmers, dtype=np.uint32), matrix)

    def __len__(self) -> int:
        return int(self.kmers.size)

    def lookup(self, kmer: int) -> np.ndarray:
        """Ids of the nodes of this rank holding kmer."""
        row = np.searchsorted(self.kmers, kmer)
        if row >= self.kmers.size or self.kmers[row] != kmer:
            return np.empty(0, dtype=np.int32)
        start, end = self.matrix.indptr[row], self.matrix.indptr[row + 1]
        return self.matrix.indices[start:end]

    def count_shared(self, query_kmers: np.ndarray) -> np.ndarray:
        """
        Count, per node id, the query k-mers found in that node.

        Args:
            query_kmers: Distinct query k-mers

        Returns:
            Array of length n_nodes with the shared k-mer count per node
        """
        n_nodes = self.matrix.shape[1]
        if self.kmers.size == 0 or query_kmers.size == 0:
            return np.zeros(n_nodes, dtype=np.int64)
        rows = np.searchsorted(self.kmers, query_kmers)
        found = rows < self.kmers.size
        rows, hits = rows[found], query_kmers[found]
        rows = rows[self.kmers[rows] == hits]
        return np.bincount(self.matrix[rows].indices, minlength=n_nodes)

    def node_sizes(self) -> np.ndarray:
        """Number of k-mers held by each node id (zero for other ranks)."""
        return np.bincount(self.matrix.indices, minlength=self.matrix.shape[1])

    def node_kmers(self, node_id: int) -> Set[int]:
        """K-mer set of one node, read back from the inverted index."""
        if self._columns is None:
            self._columns = self.matrix.tocsc()
            self._columns.sort_indices()
        start, end = self._columns.indptr[node_id], self._columns.indptr[node_id + 1]
        return set(self.kmers[self._columns.indices[start:end]].tolist())

    def rows(self) -> Iterator[Tuple[int, np.ndarray]]:
        """Yield (kmer, node ids) in ascending k-mer order."""
        indptr, indices = self.matrix.indptr, self.matrix.indices
        for row, kmer in enumerate(self.kmers.tolist()):
            yield kmer, indices[indptr[row]:indptr[row + 1]]

class TaxonomyIndex:
    """
    Taxonomy tree plus per-rank inverted k-mer index.

    Built once by IndexBuilder or read back with load_index; read only
    afterwards.
    """

    def __init__(self, tree: TaxonomyTree, kmer_size: int, step_size: int,
                 rank_indices: Optional[Dict[Rank, RankKmerIndex]] = None):
        check_kmer_params(kmer_size, step_size)
        self.tree = tree
        self.kmer_size = kmer_size
        self.step_size = step_size
        if rank_indices is None:
            rank_indices = self.build_rank_indices(tree)
        self.rank_indices = rank_indices
        self.node_sizes = self._node_sizes()

    @staticmethod
    def build_rank_indices(tree: TaxonomyTree) -> Dict[Rank, RankKmerIndex]:
        """Derive the inverted index of every rank from the node k-mer sets."""
        n_nodes = len(tree)
        return {
            rank: RankKmerIndex.from_nodes(rank, tree.nodes_at(rank), n_nodes)
            for rank in Rank
        }

    def _node_sizes(self) -> np.ndarray:
        sizes = np.zeros(len(self.tree), dtype=np.int64)
        for rank_index in self.rank_indices.values():
            sizes += rank_index.node_sizes()
        return sizes

    def __len__(self) -> int:
        return len(self.tree)

    def rank_index(self, rank: Rank) -> RankKmerIndex:
        return self.rank_indices[rank]

    def lookup(self, rank: Rank, kmer: int) -> List[int]:
        """Ids of the nodes of a rank holding kmer."""
        return self.rank_indices[rank].lookup(kmer).tolist()

    def node_kmers(self, node_id: int) -> Set[int]:
        node = self.tree.get_node(node_id)
        return self.rank_indices[node.rank].node_kmers(node_id)

    def node_size(self, node_id: int) -> int:
        return int(self.node_sizes[node_id])

def save_index(
    index: TaxonomyIndex,
    output_dir: Path,
    prefix: str = DEFAULT_PREFIX,
    force: bool = False
) -> Tuple[Path, Path]:
    """
    Write the node table and k-mer index files of an index.

    Args:
        index: Index to persist
        output_dir: Destination directory, created if missing
        prefix: File name prefix
        force: Overwrite existing index files

    Returns:
        Tuple of (tax index path, kmer index path)

    Raises:
        OutputExistsError: If a file exists and force is not set
    """
    from kmertax.io.writers import write_tax_index, write_kmer_index

    output_dir = Path(output_dir)
    tax_path, kmer_path = index_paths(output_dir, prefix)
    check_output_files([tax_path, kmer_path], force)
    output_dir.mkdir(parents=True, exist_ok=True)

    # Both files are staged next to their final names and only moved into
    # place once both writes succeed
    staged = [staging_path(path) for path in (tax_path, kmer_path)]
    try:
        write_tax_index(index, staged[0])
        write_kmer_index(index, staged[1])
        for staged_path, final_path in zip(staged, (tax_path, kmer_path)):
            os.replace(staged_path, final_path)
    except OSError as e:
        raise IndexFormatError(f"Error saving index to {output_dir}: {str(e)}")
    finally:
        for staged_path in staged:
            if staged_path.exists():
                staged_path.unlink()

    logger.info(f"Saved index of {len(index)} nodes to {output_dir} (prefix '{prefix}')")
    return tax_path, kmer_path

def check_output_files(paths: List[Path], force: bool = False) -> None:
    """
    Refuse to overwrite existing index files.

    Raises:
        OutputExistsError: If any path exists and force is not set
    """
    for path in paths:
        if Path(path).exists() and not force:
            raise OutputExistsError(f"File exists: {path} - use force to overwrite")

def load_index(
    index_dir: Path,
    prefix: str = DEFAULT_PREFIX,
    kmer_size: Optional[int] = None,
    step_size: Optional[int] = None
) -> TaxonomyIndex:
    """
    Read an index back from its node table and k-mer index files.

    Args:
        index_dir: Directory holding the index files
        prefix: File name prefix
        kmer_size: Expected k-mer size, checked against the file headers when given
        step_size: Expected step size, checked against the file headers when given

    Returns:
        Read only TaxonomyIndex

    Raises:
        IndexFormatError: If a file is missing or unreadable
        IncompatibleIndexVersionError: If a header or format version is unknown
        ParameterMismatchError: If the files or the caller disagree on parameters
    """
    from kmertax.io.parsers import read_tax_index, read_kmer_index

    tax_path, kmer_path = index_paths(index_dir, prefix)
    for path in (tax_path, kmer_path):
        if not path.exists():
            raise IndexFormatError(f"Index file not found: {path}")

    tree, tax_params = read_tax_index(tax_path)
    rank_indices, kmer_params = read_kmer_index(kmer_path, len(tree))

    if tax_params != kmer_params:
        raise ParameterMismatchError(
            f"Index files disagree on parameters: {tax_path} has kmer_size={tax_params[0]}, "
            f"step_size={tax_params[1]}; {kmer_path} has kmer_size={kmer_params[0]}, "
            f"step_size={kmer_params[1]}"
        )

    stored_kmer_size, stored_step_size = tax_params
    if kmer_size is not None and kmer_size != stored_kmer_size:
        raise ParameterMismatchError(
            f"Index built with kmer_size={stored_kmer_size}, but kmer_size={kmer_size} requested"
        )
    if step_size is not None and step_size != stored_step_size:
        raise ParameterMismatchError(
            f"Index built with step_size={stored_step_size}, but step_size={step_size} requested"
        )

    index = TaxonomyIndex(tree, stored_kmer_size, stored_step_size, rank_indices)
    logger.info(
        f"Loaded index of {len(index)} nodes from {index_dir} "
        f"(kmer_size={stored_kmer_size}, step_size={stored_step_size})"
    )
    return index

def staging_path(path: Path) -> Path:
    """Reserve a unique temporary file beside path."""
    fd, name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    return Path(name)
