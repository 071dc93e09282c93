"""Construction of taxonomy k-mer indices from reference sequences."""

import logging
from pathlib import Path
from typing import List, Dict, Optional, Sequence

from kmertax.models.errors import IndexStateError
from kmertax.core.kmer import extract_kmers
from kmertax.core.taxonomy import TaxonomyTree, parse_taxonomy_path, split_seq_name
from kmertax.core.database import TaxonomyIndex, check_output_files, save_index
from kmertax.core.utils import (
    DEFAULT_KMER_SIZE, DEFAULT_STEP_SIZE, DEFAULT_PREFIX, check_kmer_params, index_paths
)

logger = logging.getLogger(__name__)

STATS = ('records_in', 'sequences_in', 'residues_in', 'kmers_in')

class IndexBuilder:
    """
    Build a taxonomy k-mer index from (taxonomy path, sequence) pairs.

    Every k-mer of a reference sequence is added to each node on its
    lineage, so a node holds the union of the k-mers of all references
    below it. Not safe for concurrent use.
    """

    def __init__(
        self,
        output_dir: Path,
        kmer_size: int = DEFAULT_KMER_SIZE,
        step_size: int = DEFAULT_STEP_SIZE,
        prefix: str = DEFAULT_PREFIX,
        force: bool = False
    ):
        """
        Initialize a builder, checking parameters and output files.

        Args:
            output_dir: Directory to write the index to, created if missing
            kmer_size: K-mer length (1-12)
            step_size: Offset between k-mer windows (1-12)
            prefix: Index file name prefix
            force: Overwrite existing index files

        Raises:
            InvalidParameterError: If kmer_size or step_size is out of range
            OutputExistsError: If index files exist and force is not set
        """
        check_kmer_params(kmer_size, step_size)

        self.output_dir = Path(output_dir)
        self.kmer_size = kmer_size
        self.step_size = step_size
        self.prefix = prefix or DEFAULT_PREFIX
        self.force = force
        self.tree = TaxonomyTree()
        self.stats = dict.fromkeys(STATS, 0)
        self._saved = False

        check_output_files(list(index_paths(self.output_dir, self.prefix)), force)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def size(self) -> int:
        """Number of nodes created so far."""
        return len(self.tree)

    def _check_open(self) -> None:
        if self._saved:
            raise IndexStateError("Index already saved; build a new index to add sequences")

    def add(
        self,
        taxonomy_path: str,
        sequence: str,
        seq_id: Optional[str] = None,
        qual: Optional[Sequence[int]] = None,
        score_min: Optional[int] = None
    ) -> List[int]:
        """
        Add a reference sequence under its taxonomy path.

        Args:
            taxonomy_path: Path such as 'K#Bacteria;P#Firmicutes;...'
            sequence: Reference sequence
            seq_id: Record id kept on nodes created by this sequence
            qual: Optional Phred scores for quality-aware k-mer extraction
            score_min: Minimum Phred score within a k-mer

        Returns:
            Lineage of node ids the sequence was added to, root first

        Raises:
            MalformedTaxonomyPathError: If the path cannot be parsed; the tree is left unchanged
            IndexStateError: If the index has already been saved
        """
        self._check_open()

        path = parse_taxonomy_path(taxonomy_path)
        kmers = extract_kmers(sequence, self.kmer_size, self.step_size, qual, score_min)
        lineage = self.tree.lineage(self.tree.ensure_path(path, seq_id))

        kmer_list = kmers.tolist()
        for node_id in lineage:
            self.tree.get_node(node_id).kmers.update(kmer_list)

        self.stats['sequences_in'] += 1
        self.stats['residues_in'] += len(sequence)
        self.stats['kmers_in'] += len(kmer_list)

        return lineage

    def add_record(
        self,
        seq_name: str,
        sequence: str,
        qual: Optional[Sequence[int]] = None,
        score_min: Optional[int] = None
    ) -> List[int]:
        """
        Add a reference record named '<id> <taxonomy path>'.

        Args:
            seq_name: Record name; text after the first space is the taxonomy path
            sequence: Reference sequence
            qual: Optional Phred scores
            score_min: Minimum Phred score within a k-mer

        Returns:
            Lineage of node ids the sequence was added to

        Raises:
            MalformedTaxonomyPathError: If the name holds no valid taxonomy path
            IndexStateError: If the index has already been saved
        """
        self._check_open()
        self.stats['records_in'] += 1
        seq_id, taxonomy_path = split_seq_name(seq_name)
        return self.add(taxonomy_path, sequence, seq_id, qual, score_min)

    def build(self) -> TaxonomyIndex:
        """Derive the inverted index from the current tree without saving."""
        return TaxonomyIndex(self.tree, self.kmer_size, self.step_size)

    def save(self) -> TaxonomyIndex:
        """
        Write both index files and close the builder.

        Returns:
            The saved TaxonomyIndex

        Raises:
            IndexStateError: If the index has already been saved
            OutputExistsError: If index files appeared since construction and force is not set
        """
        self._check_open()
        index = self.build()
        save_index(index, self.output_dir, self.prefix, self.force)
        self._saved = True

        logger.info(
            f"Indexed {self.stats['sequences_in']} sequences "
            f"({self.stats['residues_in']} residues) into {self.size} nodes"
        )
        return index
