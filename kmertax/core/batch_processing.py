"""Batch processing utilities for kmertax."""

import logging
from typing import List, Any, Callable, Iterable, Iterator, TypeVar

logger = logging.getLogger(__name__)

# Type variables for generics
T = TypeVar('T')
U = TypeVar('U')

class BatchProcessor:
    """Generic framework for batch processing of a record stream."""

    def __init__(self, batch_size: int = 1000, show_progress: bool = False):
        """Initialize a batch processor.

        Args:
            batch_size: Number of items to process in each batch
            show_progress: Whether to log progress after each batch
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.show_progress = show_progress
        self.processed_count = 0

    def batches(self, items: Iterable[T]) -> Iterator[List[T]]:
        """Group items into lists of at most batch_size."""
        batch = []
        for item in items:
            batch.append(item)
            if len(batch) >= self.batch_size:
                yield batch
                batch = []
        if batch:
            yield batch

    def process(self, items: Iterable[T], process_func: Callable[..., List[U]],
                *args, **kwargs) -> Iterator[U]:
        """Process items in batches, yielding results as each batch completes.

        Args:
            items: Iterable of items to process
            process_func: Function to apply to each batch
            args, kwargs: Additional arguments for process_func

        Yields:
            Results of process_func, in input order
        """
        self.processed_count = 0

        for batch in self.batches(items):
            batch_results = process_func(batch, *args, **kwargs)
            self.processed_count += len(batch)

            if self.show_progress:
                logger.info(f"Processed {self.processed_count} items")

            yield from batch_results
