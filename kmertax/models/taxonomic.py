"""Data models for taxonomy."""

from enum import IntEnum
from typing import List, Dict, Tuple, Set, Optional, Any
from dataclasses import dataclass, field


class Rank(IntEnum):
    """Taxonomic ranks in descending order of generality."""
    KINGDOM = 0
    PHYLUM = 1
    CLASS = 2
    ORDER = 3
    FAMILY = 4
    GENUS = 5
    SPECIES = 6

    @property
    def tag(self) -> str:
        """Single letter tag used in taxonomy paths."""
        return RANK_TAGS[self.value]

    @property
    def label(self) -> str:
        return self.name.lower()

    def next_rank(self) -> Optional['Rank']:
        """Rank directly below this one, or None for species."""
        if self is Rank.SPECIES:
            return None
        return Rank(self.value + 1)

    @classmethod
    def from_tag(cls, tag: str) -> 'Rank':
        """
        Look up a rank by its path tag (case-insensitive).

        Raises:
            KeyError: If the tag is unknown
        """
        try:
            return cls(RANK_TAGS.index(tag.strip().upper()))
        except ValueError:
            raise KeyError(f"Unknown rank tag: {tag!r}")


RANK_TAGS = ('K', 'P', 'C', 'O', 'F', 'G', 'S')


@dataclass
class TaxNode:
    """A node in the taxonomy tree."""
    node_id: int
    rank: Rank
    name: str
    parent_id: Optional[int] = None
    seq_id: Optional[str] = None
    children: Set[int] = field(default_factory=set)
    kmers: Set[int] = field(default_factory=set)

    def as_record(self) -> Tuple:
        """Node table row: (node_id, rank tag, name, parent_id, seq_id)."""
        return (self.node_id, self.rank.tag, self.name, self.parent_id, self.seq_id)


@dataclass
class RankAssignment:
    """Accepted node at a single rank of a classification."""
    rank: Rank
    node_id: int
    name: str
    support: float


@dataclass
class TaxonomyAssignment:
    """Result of classifying one query sequence."""
    query: Optional[str] = None
    kmer_count: int = 0
    ranks: List[RankAssignment] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ranks)

    def __iter__(self):
        return iter(self.ranks)

    @property
    def is_classified(self) -> bool:
        return bool(self.ranks)

    @property
    def deepest(self) -> Optional[RankAssignment]:
        """Most specific accepted rank, or None when unclassified."""
        return self.ranks[-1] if self.ranks else None

    def to_taxonomy_string(self) -> str:
        """Render as 'K#Bacteria(100);P#Firmicutes(97)' or 'Unclassified'."""
        if not self.ranks:
            return "Unclassified"
        return ";".join(
            f"{r.rank.tag}#{r.name}({int(r.support * 100)})" for r in self.ranks
        )

    def as_dict(self) -> Dict[str, Any]:
        """Flat row for tabular output, one name/support column pair per rank."""
        row = {
            "seq_name": self.query,
            "taxonomy": self.to_taxonomy_string(),
            "kmers": self.kmer_count,
        }
        by_rank = {r.rank: r for r in self.ranks}
        for rank in Rank:
            hit = by_rank.get(rank)
            row[rank.label] = hit.name if hit else ""
            row[f"{rank.label}_support"] = hit.support if hit else None
        return row
