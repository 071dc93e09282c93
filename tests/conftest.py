"""Shared fixtures for kmertax tests."""

import random

import pytest

from kmertax.core.index import IndexBuilder

VIBRIO_PATH = (
    "K#Bacteria;P#Proteobacteria;C#Gammaproteobacteria;O#Vibrionales;"
    "F#Vibrionaceae;G#Vibrio;S#Vibrio"
)
VIBRIO_SEQ = (
    "UCCUACGGGAGGCAGCAGUGGGGAAUAUUGCACAAUGGGCGCAAGCCUGAUGCAGCCAUGCCGCGUGUAUGA"
)

def random_seq(rng: random.Random, length: int) -> str:
    return ''.join(rng.choice('ACGT') for _ in range(length))

@pytest.fixture(scope="session")
def reference_seqs():
    rng = random.Random(20151012)
    return {
        "cholerae": random_seq(rng, 300),
        "fischeri": random_seq(rng, 300),
        "streptococcaceae": random_seq(rng, 300),
        "smithii": random_seq(rng, 300),
        "novel": random_seq(rng, 300),
    }

@pytest.fixture(scope="session")
def reference_records(reference_seqs):
    """(sequence name, sequence) pairs; the Firmicutes entry stops at Family."""
    return [
        ("1 K#Bacteria;P#Proteobacteria;C#Gammaproteobacteria;O#Vibrionales;"
         "F#Vibrionaceae;G#Vibrio;S#Vibrio cholerae", reference_seqs["cholerae"]),
        ("2 K#Bacteria;P#Proteobacteria;C#Gammaproteobacteria;O#Vibrionales;"
         "F#Vibrionaceae;G#Vibrio;S#Vibrio fischeri", reference_seqs["fischeri"]),
        ("3 K#Bacteria;P#Firmicutes;C#Bacilli;O#Lactobacillales;"
         "F#Streptococcaceae;G#;S#", reference_seqs["streptococcaceae"]),
        ("4 K#Archaea;P#Euryarchaeota;C#Methanobacteria;O#Methanobacteriales;"
         "F#Methanobacteriaceae;G#Methanobrevibacter;S#Methanobrevibacter smithii",
         reference_seqs["smithii"]),
    ]

@pytest.fixture
def builder(tmp_path, reference_records):
    """Builder with all reference records added, not yet saved."""
    index_builder = IndexBuilder(tmp_path / "index", kmer_size=8, step_size=1, prefix="test")
    for seq_name, seq in reference_records:
        index_builder.add_record(seq_name, seq)
    return index_builder

@pytest.fixture
def saved_index(builder):
    """Index saved to disk by the builder fixture."""
    return builder.save()
