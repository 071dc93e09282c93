"""Top-down taxonomic classification against a k-mer index."""

import logging
from typing import List, Dict, Tuple, Iterable, Iterator, Optional, Sequence

import numpy as np

from kmertax.models.errors import InvalidParameterError
from kmertax.models.taxonomic import Rank, RankAssignment, TaxonomyAssignment
from kmertax.core.database import TaxonomyIndex
from kmertax.core.kmer import extract_kmers
from kmertax.core.utils import DEFAULT_MIN_SUPPORT

logger = logging.getLogger(__name__)

class Classifier:
    """
    Assign query sequences to the deepest supported taxon.

    Ranks are resolved from Kingdom down. At each rank the candidates are the
    nodes sharing k-mers with the query, restricted to the children of the
    node accepted at the rank above. The candidate holding the largest
    fraction of the query k-mers is accepted if that fraction reaches
    min_support. Ties go to the node with more k-mers, then the lower id.

    Read only against the index, so one instance may serve many queries.
    """

    def __init__(self, index: TaxonomyIndex, min_support: float = DEFAULT_MIN_SUPPORT):
        if not 0 < min_support <= 1:
            raise InvalidParameterError(f"min_support must be in (0, 1], got {min_support}")
        self.index = index
        self.min_support = min_support
        self.roots = np.asarray(index.tree.roots(), dtype=np.int64)

    def query_kmers(
        self,
        sequence: str,
        qual: Optional[Sequence[int]] = None,
        score_min: Optional[int] = None
    ) -> np.ndarray:
        """Distinct query k-mers, extracted with the index's parameters."""
        return extract_kmers(sequence, self.index.kmer_size, self.index.step_size, qual, score_min)

    def classify(
        self,
        sequence: str,
        name: Optional[str] = None,
        qual: Optional[Sequence[int]] = None,
        score_min: Optional[int] = None
    ) -> TaxonomyAssignment:
        """
        Classify one sequence.

        Args:
            sequence: Query sequence
            name: Query name carried into the result
            qual: Optional Phred scores for quality-aware k-mer extraction
            score_min: Minimum Phred score within a k-mer

        Returns:
            TaxonomyAssignment from Kingdom to the deepest accepted rank;
            empty when the query yields no k-mers or nothing clears min_support
        """
        kmers = self.query_kmers(sequence, qual, score_min)
        assignment = TaxonomyAssignment(query=name, kmer_count=int(kmers.size))
        if kmers.size == 0:
            logger.debug(f"No k-mers in query {name}")
            return assignment

        tree = self.index.tree
        candidates = self.roots
        rank = Rank.KINGDOM

        while rank is not None and candidates.size:
            shared = self.index.rank_index(rank).count_shared(kmers)[candidates]
            hit = shared > 0
            if not hit.any():
                logger.debug(f"No hits @ {rank.label} for query {name}")
                break

            node_id, count = self._best_candidate(candidates[hit], shared[hit])
            support = count / kmers.size
            if support < self.min_support:
                logger.debug(
                    f"Best hit @ {rank.label} for query {name} below threshold: "
                    f"{count}/{kmers.size}"
                )
                break

            node = tree.get_node(node_id)
            assignment.ranks.append(RankAssignment(rank, node_id, node.name, support))
            candidates = np.asarray(tree.children(node_id), dtype=np.int64)
            rank = rank.next_rank()

        return assignment

    def _best_candidate(self, node_ids: np.ndarray, counts: np.ndarray) -> Tuple[int, int]:
        """Pick by shared count, then node k-mer total, then lowest id."""
        sizes = self.index.node_sizes[node_ids]
        order = np.lexsort((node_ids, -sizes, -counts))
        best = order[0]
        return int(node_ids[best]), int(counts[best])

    def classify_records(
        self,
        records: Iterable[Tuple],
        score_min: Optional[int] = None
    ) -> Iterator[TaxonomyAssignment]:
        """
        Classify a stream of (name, sequence[, qual]) records.

        Args:
            records: Iterable of record tuples, e.g. SequenceRecord
            score_min: Minimum Phred score within a k-mer when qualities are present

        Yields:
            TaxonomyAssignment per record, in input order
        """
        for record in records:
            name, sequence = record[0], record[1]
            qual = record[2] if len(record) > 2 else None
            yield self.classify(sequence, name, qual, score_min)
