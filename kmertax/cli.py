#!/usr/bin/env python3
"""Command-line interface for kmertax."""

import sys
import argparse
import logging
from pathlib import Path
from typing import List

from kmertax import __version__
from kmertax.core.utils import (
    setup_logging, DEFAULT_KMER_SIZE, DEFAULT_STEP_SIZE, DEFAULT_PREFIX, DEFAULT_MIN_SUPPORT,
    DEFAULT_BATCH_SIZE
)
from kmertax.models.config import KmerTaxConfig
from kmertax.models.errors import KmerTaxError, InputError, MalformedTaxonomyPathError

logger = logging.getLogger(__name__)

def create_parser() -> argparse.ArgumentParser:
    """
    Create and return the main argument parser for kmertax.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="kmertax: k-mer taxonomy indexing and classification of nucleotide sequences",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s v{__version__}'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help='kmertax commands',
        required=True
    )

    # Index-taxonomy command
    index_parser = subparsers.add_parser(
        "index-taxonomy",
        help="Build a taxonomy k-mer index from reference sequences",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    index_parser.add_argument(
        'input_file',
        type=str,
        nargs='+',
        help="reference fasta/q files named '<id> K#..;P#..;C#..;O#..;F#..;G#..;S#..'"
    )
    index_parser.add_argument(
        '--output-dir', '-o',
        type=str,
        required=True,
        help='directory to write the index to'
    )
    index_parser.add_argument(
        '--kmer-size', '-k',
        type=int,
        default=DEFAULT_KMER_SIZE,
        help='k-mer size (1-12)'
    )
    index_parser.add_argument(
        '--step-size', '-s',
        type=int,
        default=DEFAULT_STEP_SIZE,
        help='step between k-mer windows (1-12)'
    )
    index_parser.add_argument(
        '--prefix',
        type=str,
        default=DEFAULT_PREFIX,
        help='index file name prefix'
    )
    index_parser.add_argument(
        '--force',
        action='store_true',
        help='overwrite existing index files'
    )
    index_parser.add_argument(
        '--strict',
        action='store_true',
        help='abort on records without a valid taxonomy path instead of skipping them'
    )

    # Classify-seq command
    classify_parser = subparsers.add_parser(
        "classify-seq",
        help="Classify sequences against a taxonomy k-mer index",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    classify_parser.add_argument(
        'input_file',
        type=str,
        nargs='+',
        help='fasta/q files of query sequences'
    )
    classify_parser.add_argument(
        '--db',
        type=str,
        default=None,
        help='index directory (default: $KMERTAX_INDEX_DIR)'
    )
    classify_parser.add_argument(
        '--prefix',
        type=str,
        default=DEFAULT_PREFIX,
        help='index file name prefix'
    )
    classify_parser.add_argument(
        '--min-support',
        type=float,
        default=DEFAULT_MIN_SUPPORT,
        help='min fraction of query k-mers a taxon must hold to be assigned'
    )
    classify_parser.add_argument(
        '--kmer-size', '-k',
        type=int,
        default=None,
        help='expected k-mer size of the index (default: as stored in the index)'
    )
    classify_parser.add_argument(
        '--step-size', '-s',
        type=int,
        default=None,
        help='expected step size of the index (default: as stored in the index)'
    )
    classify_parser.add_argument(
        '--score-min',
        type=int,
        default=None,
        help='skip k-mers with a base below this Phred score (fastq input)'
    )
    classify_parser.add_argument(
        '--batch-size',
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help='sequences classified per progress report'
    )
    classify_parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='output .tsv path (default: stdout)'
    )

    return parser

def validate_input_files(input_files: List[Path]) -> List[Path]:
    """
    Check that input files exist.

    Raises:
        InputError: If any input file cannot be found
    """
    for input_path in input_files:
        if not input_path.exists():
            raise InputError(f"Input file not found: {input_path}")
    return input_files

def run_index_taxonomy(config: KmerTaxConfig) -> None:
    """
    Run the index-taxonomy command.

    Args:
        config: Configuration for the index-taxonomy command
    """
    from kmertax.core.index import IndexBuilder
    from kmertax.io.parsers import read_sequences

    input_files = validate_input_files(config.input_files)
    builder = IndexBuilder(
        config.output_dir,
        kmer_size=config.kmer_size,
        step_size=config.step_size,
        prefix=config.prefix,
        force=config.force
    )

    skipped = 0
    for input_file in input_files:
        logger.info(f"Indexing reference sequences from {input_file}")
        for record in read_sequences(input_file):
            try:
                builder.add_record(record.name, record.seq)
            except MalformedTaxonomyPathError as e:
                if config.strict:
                    raise
                skipped += 1
                logger.warning(f"Skipping record: {str(e)}")

    if skipped:
        logger.warning(f"Skipped {skipped} records without a valid taxonomy path")

    builder.save()

def run_classify_seq(config: KmerTaxConfig) -> None:
    """
    Run the classify-seq command.

    Args:
        config: Configuration for the classify-seq command
    """
    from kmertax.core.batch_processing import BatchProcessor
    from kmertax.core.classify import Classifier
    from kmertax.core.database import load_index
    from kmertax.io.parsers import read_sequences
    from kmertax.io.writers import write_assignments

    input_files = validate_input_files(config.input_files)
    index = load_index(
        config.index_dir,
        config.prefix,
        kmer_size=config.kmer_size,
        step_size=config.step_size
    )
    classifier = Classifier(index, min_support=config.min_support)
    processor = BatchProcessor(batch_size=config.batch_size, show_progress=True)

    def classify_batch(records):
        return list(classifier.classify_records(records, score_min=config.score_min))

    def records():
        for input_file in input_files:
            logger.info(f"Classifying sequences from {input_file}")
            yield from read_sequences(input_file)

    assignments = list(processor.process(records(), classify_batch))
    classified = sum(1 for assignment in assignments if assignment.is_classified)
    logger.info(f"Classified {classified} of {len(assignments)} sequences")

    write_assignments(assignments, config.output if config.output else sys.stdout)

def main(argv: List[str] = None) -> int:
    """
    Main entry point for kmertax command-line interface.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    try:
        # Create configuration
        config = KmerTaxConfig(args)

        # Dispatch to appropriate command handler
        if config.command == 'index-taxonomy':
            run_index_taxonomy(config)
        elif config.command == 'classify-seq':
            run_classify_seq(config)
        else:
            logger.error(f"Unknown command: {config.command}")
            return 1

        return 0

    except KmerTaxError as e:
        logger.error(f"Error: {str(e)}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {str(e)}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
