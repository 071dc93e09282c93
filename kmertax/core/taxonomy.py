"""Taxonomy-related functionality."""

import logging
from typing import List, Dict, Tuple, Set, Optional, Iterator

from kmertax.models.errors import MalformedTaxonomyPathError, TaxonomyError
from kmertax.models.taxonomic import Rank, TaxNode

logger = logging.getLogger(__name__)

TaxPath = List[Tuple[Rank, str]]

def split_seq_name(seq_name: str) -> Tuple[Optional[str], str]:
    """
    Split a reference sequence name into its record id and taxonomy path.

    Reference names look like '32 K#Bacteria;P#Actinobacteria;...'; only the
    text after the first space is the taxonomy path.

    Args:
        seq_name: Reference sequence name

    Returns:
        Tuple of (record id or None, taxonomy path string)
    """
    seq_name = seq_name.strip()
    if ' ' not in seq_name:
        return None, seq_name
    seq_id, path = seq_name.split(' ', 1)
    return seq_id, path.strip()

def parse_taxonomy_path(path: str) -> TaxPath:
    """
    Parse a taxonomy path string into (rank, name) pairs.

    Tokens are 'Tag#Name' separated by ';', starting at Kingdom with no skipped
    or repeated ranks. Trailing tokens with an empty name ('C#;O#') truncate
    the path.

    Args:
        path: Taxonomy path such as 'K#Bacteria;P#Firmicutes;C#;O#;F#;G#;S#'

    Returns:
        List of (rank, name) pairs from Kingdom down to the deepest named rank

    Raises:
        MalformedTaxonomyPathError: If the path is empty, gapped, out of order
            or holds an unknown tag
    """
    parsed = []
    truncated = False

    for i, token in enumerate(path.strip().split(';')):
        if '#' not in token:
            raise MalformedTaxonomyPathError(f"Missing rank tag in token {token!r} of {path!r}")
        tag, name = token.split('#', 1)
        try:
            rank = Rank.from_tag(tag)
        except KeyError:
            raise MalformedTaxonomyPathError(f"Unknown tax level {tag!r} in {path!r}")
        if i >= len(Rank) or rank != i:
            raise MalformedTaxonomyPathError(f"Unexpected tax level {tag!r} in {path!r}")

        name = name.strip()
        if not name:
            truncated = True
            continue
        if truncated:
            raise MalformedTaxonomyPathError(f"Gapped tax level info in {path!r}")
        parsed.append((rank, name))

    if not parsed:
        raise MalformedTaxonomyPathError(f"No named tax levels in {path!r}")

    return parsed

class TaxonomyTree:
    """
    Forest of rank-typed taxonomy nodes.

    Nodes live in an arena indexed by their integer id, alongside a map from
    (rank, name, parent_id) to id so that shared path prefixes resolve to the
    same nodes.
    """

    def __init__(self):
        self._nodes: List[TaxNode] = []
        self._lookup: Dict[Tuple[Rank, str, Optional[int]], int] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[TaxNode]:
        return iter(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return 0 <= node_id < len(self._nodes)

    @property
    def size(self) -> int:
        return len(self._nodes)

    def get_node(self, node_id: int) -> TaxNode:
        """
        Return the node with the given id.

        Raises:
            TaxonomyError: If no such node exists
        """
        if node_id not in self:
            raise TaxonomyError(f"Node id {node_id} not found in taxonomy tree")
        return self._nodes[node_id]

    def find(self, rank: Rank, name: str, parent_id: Optional[int] = None) -> Optional[int]:
        """Id of the node keyed by (rank, name, parent_id), or None."""
        return self._lookup.get((rank, name, parent_id))

    def ensure_path(self, path: TaxPath, seq_id: Optional[str] = None) -> int:
        """
        Resolve a parsed taxonomy path, creating missing nodes.

        The whole path is checked before any node is created so that a
        malformed path leaves the tree unchanged.

        Args:
            path: (rank, name) pairs from Kingdom down
            seq_id: Representative record id stored on newly created nodes

        Returns:
            Id of the deepest node in the path

        Raises:
            MalformedTaxonomyPathError: If the path does not start at Kingdom or skips ranks
        """
        if not path:
            raise MalformedTaxonomyPathError("Empty taxonomy path")
        for i, (rank, name) in enumerate(path):
            if rank != i:
                raise MalformedTaxonomyPathError(
                    f"Expected rank {Rank(i).label} at position {i}, got {Rank(rank).label}"
                )
            if not name:
                raise MalformedTaxonomyPathError(f"Empty name at rank {Rank(rank).label}")

        parent_id = None
        for rank, name in path:
            node_id = self._lookup.get((rank, name, parent_id))
            if node_id is None:
                node_id = self._create(Rank(rank), name, parent_id, seq_id)
            parent_id = node_id

        return parent_id

    def _create(self, rank: Rank, name: str, parent_id: Optional[int], seq_id: Optional[str]) -> int:
        node = TaxNode(len(self._nodes), rank, name, parent_id, seq_id)
        self._attach(node)
        logger.debug(f"Created node {node.node_id}: {rank.tag}#{name}")
        return node.node_id

    def _attach(self, node: TaxNode) -> None:
        self._nodes.append(node)
        self._lookup[(node.rank, node.name, node.parent_id)] = node.node_id
        if node.parent_id is not None:
            self._nodes[node.parent_id].children.add(node.node_id)

    def add_node(self, node: TaxNode) -> None:
        """
        Append a node read back from a node table.

        Ids must arrive densely in creation order; parents must precede
        their children.

        Raises:
            TaxonomyError: If the id is out of sequence or the parent is unknown
        """
        if node.node_id != len(self._nodes):
            raise TaxonomyError(f"Expected node id {len(self._nodes)}, got {node.node_id}")
        if node.parent_id is not None and node.parent_id not in self:
            raise TaxonomyError(f"Parent id {node.parent_id} of node {node.node_id} not found")
        self._attach(node)

    def children(self, node_id: int) -> List[int]:
        """Sorted child ids of a node."""
        return sorted(self.get_node(node_id).children)

    def roots(self) -> List[int]:
        """Ids of the Kingdom nodes."""
        return [node.node_id for node in self._nodes if node.parent_id is None]

    def nodes_at(self, rank: Rank) -> List[TaxNode]:
        return [node for node in self._nodes if node.rank == rank]

    def lineage(self, node_id: int) -> List[int]:
        """
        Node ids from the Kingdom root down to node_id.

        Args:
            node_id: Id of the deepest node

        Returns:
            Ordered list of node ids, root first
        """
        ids = []
        current = node_id
        while current is not None:
            ids.append(current)
            current = self.get_node(current).parent_id
        return ids[::-1]

    def taxonomy_string(self, node_id: int) -> str:
        """Full path of a node, e.g. 'K#Bacteria;P#Firmicutes'."""
        return ';'.join(
            f"{node.rank.tag}#{node.name}"
            for node in (self._nodes[i] for i in self.lineage(node_id))
        )
