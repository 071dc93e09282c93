"""Tests for batch processing."""

import pytest

from kmertax.core.batch_processing import BatchProcessor

def test_batches():
    processor = BatchProcessor(batch_size=3)
    assert list(processor.batches(range(7))) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(processor.batches([])) == []

def test_process_keeps_order_and_counts():
    processor = BatchProcessor(batch_size=2)
    calls = []

    def double(batch, factor):
        calls.append(len(batch))
        return [item * factor for item in batch]

    assert list(processor.process(range(5), double, 2)) == [0, 2, 4, 6, 8]
    assert calls == [2, 2, 1]
    assert processor.processed_count == 5

def test_bad_batch_size():
    with pytest.raises(ValueError):
        BatchProcessor(batch_size=0)
