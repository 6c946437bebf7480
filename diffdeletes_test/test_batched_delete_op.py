#!/usr/bin/env python3
"""
Test suite for the batched delete executor.

Covers the batch windows sent for succeeding deletes, the shrinking of the
batch size on rejected requests, its reset after an accepted request and
the fatal failure on a single triple that cannot be deleted.
"""

import asyncio
from typing import List, Sequence

import pytest

from diffdeletes.config.config_loader import ConfigurationError
from diffdeletes.db.sparql_inf import SparqlUpdateError
from diffdeletes.ops.batched_delete_op import (
    BatchedDeleteExecutor, BatchDeleteFatalError, SparqlDeleteOperation, next_batch_size
)
from diffdeletes.rdf.rdf_terms import Triple

from conftest import FakeSparqlImpl, make_triples, count_triple_lines


class RecordingDelete:
    """Delete operation recording every batch; rejects batches matching ``fails``."""

    def __init__(self, fails=lambda batch: False):
        self.fails = fails
        self.batches: List[List[Triple]] = []

    async def __call__(self, batch: Sequence[Triple]) -> None:
        self.batches.append(list(batch))
        if self.fails(batch):
            raise SparqlUpdateError("rejected", status=500)

    @property
    def sizes(self) -> List[int]:
        return [len(batch) for batch in self.batches]


def run(executor, triples, delete):
    return asyncio.run(executor.execute(triples, delete))


class TestBatchWindows:

    def test_empty_collection_sends_nothing(self):
        delete = RecordingDelete()
        stats = run(BatchedDeleteExecutor(100), [], delete)

        assert delete.batches == []
        assert stats.triple_count == 0
        assert stats.request_count == 0

    def test_full_batches_and_short_final_batch(self):
        triples = make_triples(250)
        delete = RecordingDelete()
        stats = run(BatchedDeleteExecutor(100), triples, delete)

        assert delete.sizes == [100, 100, 50]
        assert stats.request_count == 3
        assert stats.failed_request_count == 0
        assert [t for batch in delete.batches for t in batch] == triples

    def test_exact_multiple_of_batch_size(self):
        delete = RecordingDelete()
        run(BatchedDeleteExecutor(5), make_triples(10), delete)
        assert delete.sizes == [5, 5]

    def test_fewer_triples_than_batch_size(self):
        delete = RecordingDelete()
        run(BatchedDeleteExecutor(100), make_triples(7), delete)
        assert delete.sizes == [7]


class TestShrinking:

    def test_next_batch_size_rounds_up(self):
        assert next_batch_size(100) == 50
        assert next_batch_size(5) == 3
        assert next_batch_size(3) == 2
        assert next_batch_size(2) == 1

    def test_bad_triple_is_isolated_and_reported(self):
        triples = make_triples(4)
        bad = triples[2]
        delete = RecordingDelete(fails=lambda batch: bad in batch)

        with pytest.raises(BatchDeleteFatalError) as exc_info:
            run(BatchedDeleteExecutor(4), triples, delete)

        # [0..3] fails, [0..1] passes, [2..3] fails, [2] fails
        assert delete.sizes == [4, 2, 2, 1]
        assert delete.batches[-1] == [bad]
        assert exc_info.value.triple == bad
        assert str(bad.subject) in exc_info.value.serialized
        assert isinstance(exc_info.value.cause, SparqlUpdateError)

    def test_shrink_sequence_halves_down_to_one(self):
        triples = make_triples(10)
        delete = RecordingDelete(fails=lambda batch: triples[0] in batch)

        with pytest.raises(BatchDeleteFatalError):
            run(BatchedDeleteExecutor(10), triples, delete)

        assert delete.sizes == [10, 5, 3, 2, 1]

    def test_batch_size_resets_after_success(self):
        # The store only accepts requests of at most three triples
        delete = RecordingDelete(fails=lambda batch: len(batch) > 3)
        stats = run(BatchedDeleteExecutor(8), make_triples(8), delete)

        assert delete.sizes == [8, 4, 2, 6, 3, 3]
        assert stats.failed_request_count == 3
        assert stats.request_count == 6

    def test_windows_are_contiguous_and_ordered(self):
        triples = make_triples(20)
        delete = RecordingDelete(fails=lambda batch: len(batch) > 6)
        run(BatchedDeleteExecutor(16), triples, delete)

        accepted = [batch for batch in delete.batches if len(batch) <= 6]
        assert [t for batch in accepted for t in batch] == triples

    def test_single_failing_triple(self):
        delete = RecordingDelete(fails=lambda batch: True)

        with pytest.raises(BatchDeleteFatalError):
            run(BatchedDeleteExecutor(1), make_triples(3), delete)

        assert delete.sizes == [1]

    def test_unexpected_errors_are_not_retried(self):
        async def broken(batch):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            asyncio.run(BatchedDeleteExecutor(10).execute(make_triples(3), broken))


class TestConfiguration:

    @pytest.mark.parametrize("max_batch_size", [0, -1, True, "10", 2.5])
    def test_invalid_max_batch_size(self, max_batch_size):
        with pytest.raises(ConfigurationError):
            BatchedDeleteExecutor(max_batch_size)


class TestSparqlDeleteOperation:

    def test_delete_query_targets_graph_with_explicit_string_type(self):
        operation = SparqlDeleteOperation(FakeSparqlImpl(), "http://mu.semte.ch/graphs/public")
        query = operation.build_delete_query(make_triples(2))

        assert query.startswith("DELETE DATA {")
        assert "GRAPH <http://mu.semte.ch/graphs/public> {" in query
        assert '"title 0"^^<http://www.w3.org/2001/XMLSchema#string> .' in query
        assert count_triple_lines(query) == 2

    def test_string_literals_are_deleted_in_both_forms(self):
        operation = SparqlDeleteOperation(FakeSparqlImpl(), "http://mu.semte.ch/graphs/public")
        query = operation.build_delete_query(make_triples(1))

        lines = [line.strip() for line in query.splitlines()]
        subject = "<http://data.example.org/id/s00000> <http://purl.org/dc/terms/title>"
        assert f'{subject} "title 0"^^<http://www.w3.org/2001/XMLSchema#string> .' in lines
        assert f'{subject} "title 0" .' in lines
        assert query.count("DELETE DATA") == 1

    def test_single_form_when_string_rule_is_off(self):
        operation = SparqlDeleteOperation(FakeSparqlImpl(), "http://mu.semte.ch/graphs/public", explicit_datatypes=())
        query = operation.build_delete_query(make_triples(1))

        assert '"title 0" .' in query
        assert "XMLSchema#string" not in query

    def test_call_sends_one_update(self):
        sparql = FakeSparqlImpl()
        operation = SparqlDeleteOperation(sparql, "http://mu.semte.ch/graphs/public")
        asyncio.run(operation(make_triples(3)))

        assert sparql.delete_batch_sizes() == [3]

    def test_store_rejection_propagates(self):
        sparql = FakeSparqlImpl(fail_update=lambda update: True)
        operation = SparqlDeleteOperation(sparql, "http://mu.semte.ch/graphs/public")

        with pytest.raises(SparqlUpdateError):
            asyncio.run(operation(make_triples(1)))

    def test_executor_with_store_size_limit(self):
        sparql = FakeSparqlImpl(fail_update=lambda update: count_triple_lines(update) > 25)
        operation = SparqlDeleteOperation(sparql, "http://mu.semte.ch/graphs/public")
        stats = asyncio.run(BatchedDeleteExecutor(100).execute(make_triples(100), operation))

        assert stats.triple_count == 100
        assert sum(size for size in sparql.delete_batch_sizes() if size <= 25) == 100
