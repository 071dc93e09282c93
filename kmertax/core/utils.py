"""Utility functions for kmertax."""

import logging
from pathlib import Path
from typing import List, Dict, Tuple, Optional

from kmertax.models.errors import InvalidParameterError

# Logger configuration
logger = logging.getLogger(__name__)

# Static global variables
KMER_SIZE_RANGE = (1, 12)
STEP_SIZE_RANGE = (1, 12)
DEFAULT_KMER_SIZE = 8
DEFAULT_STEP_SIZE = 1
DEFAULT_PREFIX = 'taxonomy'
DEFAULT_MIN_SUPPORT = 0.9
DEFAULT_BATCH_SIZE = 1000
INDEX_FORMAT_VERSION = 1
INDEX_MAGIC = '#kmertax'
TAX_INDEX_SUFFIX = '_tax_index.dat'
KMER_INDEX_SUFFIX = '_kmer_index.dat'

def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the kmertax application.

    Args:
        verbose: Whether to enable verbose (DEBUG) logging

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    return logging.getLogger('kmertax')

def check_kmer_params(kmer_size: int, step_size: int) -> None:
    """
    Validate k-mer window and step sizes.

    Args:
        kmer_size: Length of each k-mer
        step_size: Offset between consecutive k-mer windows

    Raises:
        InvalidParameterError: If either value is not an int in its allowed range
    """
    for name, value, (low, high) in (
        ('kmer_size', kmer_size, KMER_SIZE_RANGE),
        ('step_size', step_size, STEP_SIZE_RANGE),
    ):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
        if not low <= value <= high:
            raise InvalidParameterError(f"Bad {name}: {value} - must be in range {low}..{high}")

def index_paths(index_dir: Path, prefix: str = DEFAULT_PREFIX) -> Tuple[Path, Path]:
    """
    Paths of the node table and k-mer index files for an index.

    Args:
        index_dir: Directory holding the index
        prefix: File name prefix

    Returns:
        Tuple of (tax index path, kmer index path)
    """
    index_dir = Path(index_dir)
    return (
        index_dir / f"{prefix}{TAX_INDEX_SUFFIX}",
        index_dir / f"{prefix}{KMER_INDEX_SUFFIX}",
    )
