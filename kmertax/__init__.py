"""K-mer based taxonomic indexing and classification of nucleotide sequences."""

__version__ = "0.1.0"
