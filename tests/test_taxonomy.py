"""Tests for taxonomy path parsing and the taxonomy tree."""

import pytest

from kmertax.core.taxonomy import TaxonomyTree, parse_taxonomy_path, split_seq_name
from kmertax.models.errors import MalformedTaxonomyPathError, TaxonomyError
from kmertax.models.taxonomic import Rank, TaxNode

def test_parse_taxonomy_path():
    assert parse_taxonomy_path("K#Bacteria;P#Firmicutes") == [
        (Rank.KINGDOM, "Bacteria"),
        (Rank.PHYLUM, "Firmicutes"),
    ]

def test_parse_taxonomy_path_full_lineage():
    path = parse_taxonomy_path("K#1;P#2;C#3;O#4;F#5;G#6;S#Ferrimicrobium acidiphilum")
    assert [rank for rank, _ in path] == list(Rank)
    assert path[-1] == (Rank.SPECIES, "Ferrimicrobium acidiphilum")

def test_parse_taxonomy_path_empty_names_truncate():
    assert parse_taxonomy_path("K#b;P#e;C#;O#;F#;G#;S#") == [
        (Rank.KINGDOM, "b"),
        (Rank.PHYLUM, "e"),
    ]

def test_parse_taxonomy_path_lower_case_tags():
    assert parse_taxonomy_path("k#b;p#e") == [(Rank.KINGDOM, "b"), (Rank.PHYLUM, "e")]

@pytest.mark.parametrize("path", [
    "K#1;C#;P#3;O#;F#;G#;S#",          # wrong order
    "K#1;P#;C#3;O#;F#;G#;S#",          # gapped
    "P#Firmicutes",                     # no kingdom
    "K#a;K#b",                          # repeated rank
    "K#a;X#b",                          # unknown tag
    "Bacteria;Firmicutes",              # no tags
    "K#;P#;C#;O#;F#;G#;S#",            # nothing named
    "",
    "K#a;P#b;C#c;O#d;F#e;G#f;S#g;S#h",  # too many levels
])
def test_parse_taxonomy_path_malformed_raises(path):
    with pytest.raises(MalformedTaxonomyPathError):
        parse_taxonomy_path(path)

def test_split_seq_name():
    assert split_seq_name("32 K#Bacteria;P#Actinobacteria;S#Ferrimicrobium acidiphilum") == (
        "32", "K#Bacteria;P#Actinobacteria;S#Ferrimicrobium acidiphilum"
    )
    assert split_seq_name("K#Bacteria;P#Firmicutes") == (None, "K#Bacteria;P#Firmicutes")

def test_ensure_path_shares_prefixes():
    tree = TaxonomyTree()
    firmicutes = tree.ensure_path(parse_taxonomy_path("K#Bacteria;P#Firmicutes"))
    bacilli = tree.ensure_path(parse_taxonomy_path("K#Bacteria;P#Firmicutes;C#Bacilli"))
    actino = tree.ensure_path(parse_taxonomy_path("K#Bacteria;P#Actinobacteria"))

    assert len(tree) == 4
    assert tree.lineage(bacilli) == [0, firmicutes, bacilli]
    assert tree.get_node(actino).parent_id == 0
    assert tree.children(0) == [firmicutes, actino]
    assert tree.roots() == [0]

def test_ensure_path_is_idempotent():
    tree = TaxonomyTree()
    path = parse_taxonomy_path("K#Bacteria;P#Firmicutes;C#Bacilli")
    first = tree.ensure_path(path)
    size = len(tree)
    assert tree.ensure_path(path) == first
    assert len(tree) == size

def test_same_name_under_different_parents_gives_distinct_nodes():
    tree = TaxonomyTree()
    a = tree.ensure_path(parse_taxonomy_path("K#Bacteria;P#Unclassified"))
    b = tree.ensure_path(parse_taxonomy_path("K#Archaea;P#Unclassified"))
    assert a != b
    assert tree.roots() == [0, 2]
    assert tree.find(Rank.PHYLUM, "Unclassified", 2) == b

def test_ensure_path_rejects_bad_paths_without_mutation():
    tree = TaxonomyTree()
    tree.ensure_path([(Rank.KINGDOM, "Bacteria")])
    with pytest.raises(MalformedTaxonomyPathError):
        tree.ensure_path([(Rank.KINGDOM, "Bacteria"), (Rank.CLASS, "Bacilli")])
    with pytest.raises(MalformedTaxonomyPathError):
        tree.ensure_path([(Rank.PHYLUM, "Firmicutes")])
    with pytest.raises(MalformedTaxonomyPathError):
        tree.ensure_path([])
    assert len(tree) == 1

def test_rank_monotonicity():
    tree = TaxonomyTree()
    tree.ensure_path(parse_taxonomy_path("K#a;P#b;C#c;O#d;F#e;G#f;S#g"))
    tree.ensure_path(parse_taxonomy_path("K#a;P#b;C#x"))
    for node in tree:
        if node.parent_id is None:
            assert node.rank == Rank.KINGDOM
        else:
            assert node.rank == tree.get_node(node.parent_id).rank + 1

def test_seq_id_kept_on_created_nodes():
    tree = TaxonomyTree()
    tree.ensure_path(parse_taxonomy_path("K#a;P#b"), seq_id="7")
    tree.ensure_path(parse_taxonomy_path("K#a;P#c"), seq_id="8")
    assert [node.seq_id for node in tree] == ["7", "7", "8"]

def test_taxonomy_string():
    tree = TaxonomyTree()
    node_id = tree.ensure_path(parse_taxonomy_path("K#Bacteria;P#Firmicutes;C#Bacilli"))
    assert tree.taxonomy_string(node_id) == "K#Bacteria;P#Firmicutes;C#Bacilli"

def test_get_node_unknown_id_raises():
    with pytest.raises(TaxonomyError):
        TaxonomyTree().get_node(0)

def test_add_node_requires_dense_ids_and_known_parent():
    tree = TaxonomyTree()
    tree.add_node(TaxNode(0, Rank.KINGDOM, "Bacteria"))
    tree.add_node(TaxNode(1, Rank.PHYLUM, "Firmicutes", parent_id=0))
    assert tree.children(0) == [1]
    with pytest.raises(TaxonomyError):
        tree.add_node(TaxNode(3, Rank.KINGDOM, "Archaea"))
    with pytest.raises(TaxonomyError):
        tree.add_node(TaxNode(2, Rank.PHYLUM, "Euryarchaeota", parent_id=5))
