"""Configuration management for kmertax."""

import os
from pathlib import Path
from typing import List, Optional, Dict, Any, Union

from kmertax.models.errors import KmerTaxError
from kmertax.core.utils import (
    DEFAULT_KMER_SIZE, DEFAULT_STEP_SIZE, DEFAULT_PREFIX, DEFAULT_MIN_SUPPORT, DEFAULT_BATCH_SIZE
)

class ConfigError(KmerTaxError):
    """Raised when there's an issue with configuration."""
    pass

class KmerTaxConfig:
    """Centralized configuration for kmertax."""

    def __init__(self, args: Optional[Any] = None):
        """
        Initialize configuration from args and environment.

        Args:
            args: Arguments from argparse

        Raises:
            ConfigError: If required configuration is missing
        """
        # Command-specific configuration - get this first
        self.command = getattr(args, 'command', None)

        # Common configuration
        self.verbose = getattr(args, 'verbose', False)
        self.prefix = getattr(args, 'prefix', None) or DEFAULT_PREFIX

        # Index-taxonomy command configuration
        if self.command == 'index-taxonomy':
            self.input_files = [Path(f) for f in getattr(args, 'input_file', [])]
            output_dir = getattr(args, 'output_dir', None)
            if not output_dir:
                raise ConfigError("Output directory not specified. Utilize '--output-dir' parameter.")
            self.output_dir = Path(output_dir)
            self.kmer_size = getattr(args, 'kmer_size', DEFAULT_KMER_SIZE)
            self.step_size = getattr(args, 'step_size', DEFAULT_STEP_SIZE)
            self.force = getattr(args, 'force', False)
            self.strict = getattr(args, 'strict', False)

        # Classify-seq command configuration
        elif self.command == 'classify-seq':
            self.index_dir = getattr(args, 'db', None) or os.environ.get("KMERTAX_INDEX_DIR")
            if not self.index_dir:
                raise ConfigError("Index directory not specified. Either 'export KMERTAX_INDEX_DIR=<path_to_index>' or utilize '--db' parameter.")
            self.index_dir = Path(self.index_dir)
            self.input_files = [Path(f) for f in getattr(args, 'input_file', [])]
            self.kmer_size = getattr(args, 'kmer_size', None)
            self.step_size = getattr(args, 'step_size', None)
            self.min_support = getattr(args, 'min_support', DEFAULT_MIN_SUPPORT)
            self.score_min = getattr(args, 'score_min', None)
            self.batch_size = getattr(args, 'batch_size', DEFAULT_BATCH_SIZE)
            output = getattr(args, 'output', None)
            self.output = Path(output) if output else None
