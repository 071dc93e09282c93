"""Tests for index construction."""

import pytest

from kmertax.core.index import IndexBuilder
from kmertax.core.kmer import extract_kmers
from kmertax.core.utils import index_paths
from kmertax.models.errors import (
    IndexStateError, InvalidParameterError, MalformedTaxonomyPathError, OutputExistsError
)
from kmertax.models.taxonomic import Rank

from tests.conftest import VIBRIO_PATH, VIBRIO_SEQ

def test_first_window_present_in_every_lineage_node(tmp_path):
    builder = IndexBuilder(tmp_path, kmer_size=8, step_size=1)
    lineage = builder.add(VIBRIO_PATH, VIBRIO_SEQ)

    assert len(lineage) == len(Rank)
    for node_id in lineage:
        assert 26927 in builder.tree.get_node(node_id).kmers

def test_add_unions_kmers_into_whole_lineage(tmp_path):
    builder = IndexBuilder(tmp_path, kmer_size=3, step_size=1)
    builder.add("K#b;P#e;C#;O#;F#;G#;S#", "aaga")
    assert builder.size == 2
    assert builder.tree.get_node(0).kmers == {3, 12}  # aag=000011, aga=001100
    assert builder.tree.get_node(1).kmers == {3, 12}

    builder.add("K#b;P#f;C#;O#;F#;G#;S#", "aagu")
    assert builder.size == 3
    assert builder.tree.get_node(0).kmers == {3, 12, 13}  # agu=001101
    assert builder.tree.get_node(2).kmers == {3, 13}

    builder.add("K#b;P#;C#;O#;F#;G#;S#", "aag")
    assert builder.size == 3
    assert builder.tree.get_node(0).kmers == {3, 12, 13}

    builder.add("K#b;P#e;C#g;O#;F#;G#;S#", "aagag")
    assert builder.size == 4
    assert builder.tree.get_node(3).name == "g"
    assert builder.tree.get_node(3).kmers == {3, 12, 51}  # gag=110011
    assert builder.tree.get_node(1).kmers == {3, 12, 51}

def test_subset_monotonicity(builder):
    for node in builder.tree:
        if node.parent_id is not None:
            assert node.kmers <= builder.tree.get_node(node.parent_id).kmers

def test_adding_same_record_twice_creates_no_nodes(tmp_path):
    builder = IndexBuilder(tmp_path, kmer_size=8)
    builder.add(VIBRIO_PATH, VIBRIO_SEQ)
    size = builder.size
    kmers = [set(node.kmers) for node in builder.tree]

    builder.add(VIBRIO_PATH, VIBRIO_SEQ)
    assert builder.size == size
    assert [node.kmers for node in builder.tree] == kmers

def test_malformed_path_leaves_tree_untouched(builder):
    size = builder.size
    with pytest.raises(MalformedTaxonomyPathError):
        builder.add("K#Bacteria;C#Bacilli", "ACGTACGTACGT")
    with pytest.raises(MalformedTaxonomyPathError):
        builder.add_record("9 no taxonomy here", "ACGTACGTACGT")
    assert builder.size == size

def test_add_record_keeps_seq_id(tmp_path):
    builder = IndexBuilder(tmp_path, kmer_size=4)
    lineage = builder.add_record("32 K#Bacteria;P#Actinobacteria", "ACGTTGCA")
    assert [builder.tree.get_node(i).seq_id for i in lineage] == ["32", "32"]
    assert builder.stats["records_in"] == 1
    assert builder.stats["sequences_in"] == 1
    assert builder.stats["residues_in"] == 8

def test_ambiguous_bases_are_not_indexed(tmp_path):
    builder = IndexBuilder(tmp_path, kmer_size=4)
    lineage = builder.add("K#a", "ACGTNNNNACGA")
    kmers = builder.tree.get_node(lineage[-1]).kmers
    assert kmers == set(extract_kmers("ACGT", 4).tolist()) | set(extract_kmers("ACGA", 4).tolist())

def test_quality_aware_add(tmp_path):
    builder = IndexBuilder(tmp_path, kmer_size=2)
    lineage = builder.add("K#a", "ACGT", qual=[40, 40, 10, 40], score_min=20)
    assert builder.tree.get_node(lineage[0]).kmers == {2}

@pytest.mark.parametrize("kmer_size,step_size", [(0, 1), (13, 1), (8, 0), (8, 13)])
def test_invalid_parameters_raise_before_io(tmp_path, kmer_size, step_size):
    output_dir = tmp_path / "never_created"
    with pytest.raises(InvalidParameterError):
        IndexBuilder(output_dir, kmer_size=kmer_size, step_size=step_size)
    assert not output_dir.exists()

def test_creates_output_dir(tmp_path):
    output_dir = tmp_path / "a" / "b"
    IndexBuilder(output_dir)
    assert output_dir.is_dir()

def test_existing_files_refused_without_force(tmp_path):
    tax_path, _ = index_paths(tmp_path, "taxonomy")
    tax_path.write_text("old index")
    with pytest.raises(OutputExistsError):
        IndexBuilder(tmp_path)

    builder = IndexBuilder(tmp_path, force=True)
    builder.add("K#a", "ACGTACGTAC")
    builder.save()
    assert tax_path.read_text().startswith("#kmertax")

def test_save_writes_files_and_closes_builder(builder):
    index = builder.save()
    tax_path, kmer_path = index_paths(builder.output_dir, "test")
    assert tax_path.exists()
    assert kmer_path.exists()
    assert len(index) == builder.size

    with pytest.raises(IndexStateError):
        builder.add("K#Bacteria", "ACGTACGTACGT")
    with pytest.raises(IndexStateError):
        builder.add_record("5 K#Bacteria", "ACGTACGTACGT")
    with pytest.raises(IndexStateError):
        builder.save()

def test_build_derives_inverted_index(builder):
    index = builder.build()
    for node in builder.tree:
        assert index.node_kmers(node.node_id) == node.kmers
        assert index.node_size(node.node_id) == len(node.kmers)

    for kmer in list(builder.tree.get_node(0).kmers)[:20]:
        expected = [
            node.node_id for node in builder.tree.nodes_at(Rank.KINGDOM) if kmer in node.kmers
        ]
        assert index.lookup(Rank.KINGDOM, kmer) == expected
