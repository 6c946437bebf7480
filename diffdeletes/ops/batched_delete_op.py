"""
Batched delete of triples from the triplestore.

The triples are sent in DELETE DATA requests of at most ``max_batch_size``
triples. When the store rejects a request (too large, a triple it cannot
handle, a network fault) the same window is retried with half as many
triples, down to a single triple. After every accepted request the batch size
goes back to the maximum. A single triple that is still rejected aborts the
whole run with a BatchDeleteFatalError naming that triple; nothing is skipped.

Every request is atomic on the store side, so a rejected request has removed
nothing and retrying the window is safe.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Collection, List, Sequence

from rdflib import URIRef
from rdflib.namespace import RDF, XSD

from ..config.config_loader import ConfigurationError
from ..db.sparql_inf import SparqlBackendInterface, SparqlUpdateError
from ..rdf.rdf_terms import Triple, format_triple, format_triple_forms

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 100

DEFAULT_EXPLICIT_DATATYPES = (str(XSD.string), str(RDF.langString))

DeleteBatch = Callable[[Sequence[Triple]], Awaitable[None]]


class BatchDeleteFatalError(Exception):
    """A single triple could not be deleted; the run was aborted."""

    def __init__(self, triple: Triple, serialized: str, cause: BaseException):
        super().__init__(f"Could not delete triple {serialized}: {cause}")
        self.triple = triple
        self.serialized = serialized
        self.cause = cause


@dataclass
class BatchDeleteStats:
    """Counters of a completed batched delete."""
    triple_count: int = 0
    request_count: int = 0
    failed_request_count: int = 0
    batch_sizes: List[int] = field(default_factory=list)


def next_batch_size(failed_batch_size: int) -> int:
    """Batch size to retry with after a batch of ``failed_batch_size`` was rejected."""
    return (failed_batch_size + 1) // 2


class SparqlDeleteOperation:
    """
    Deletes one batch of triples from a graph with a single DELETE DATA request.

    Literals typed with one of ``explicit_datatypes`` are written with their
    datatype so the store matches them (see rdf_terms.format_term). Where that
    differs from the regular form, both are sent so either copy is removed.
    A form the store does not hold is ignored by DELETE DATA.
    """

    def __init__(self, sparql_impl: SparqlBackendInterface, graph_uri: str,
                 explicit_datatypes: Collection[str] = DEFAULT_EXPLICIT_DATATYPES):
        self.sparql_impl = sparql_impl
        self.graph_uri = graph_uri
        self.explicit_datatypes = frozenset(str(datatype) for datatype in explicit_datatypes)

    def build_delete_query(self, batch: Sequence[Triple]) -> str:
        lines = "\n        ".join(line for triple in batch
                                   for line in format_triple_forms(triple, self.explicit_datatypes))
        return (
            "DELETE DATA {\n"
            f"      GRAPH {URIRef(self.graph_uri).n3()} {{\n"
            f"        {lines}\n"
            "      }\n"
            "    }"
        )

    async def __call__(self, batch: Sequence[Triple]) -> None:
        await self.sparql_impl.execute_sparql_update(self.build_delete_query(batch))


class BatchedDeleteExecutor:
    """
    Applies a delete operation to a triple collection in shrinking batches.
    """

    def __init__(self, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
                 explicit_datatypes: Collection[str] = DEFAULT_EXPLICIT_DATATYPES):
        """
        Args:
            max_batch_size: Number of triples in the first request of every window
            explicit_datatypes: Datatypes written explicitly when naming a failed triple

        Raises:
            ConfigurationError: If max_batch_size is not a positive integer
        """
        if isinstance(max_batch_size, bool) or not isinstance(max_batch_size, int) or max_batch_size <= 0:
            raise ConfigurationError(f"max_batch_size must be a positive integer, got: {max_batch_size!r}")

        self.max_batch_size = max_batch_size
        self.explicit_datatypes = frozenset(str(datatype) for datatype in explicit_datatypes)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def execute(self, triples: Sequence[Triple], delete_batch: DeleteBatch) -> BatchDeleteStats:
        """
        Delete all ``triples`` through ``delete_batch``.

        Args:
            triples: Ordered triples to delete; the order fixes the batch windows
            delete_batch: Coroutine function deleting one batch atomically,
                raising SparqlUpdateError when the batch was not deleted

        Returns:
            BatchDeleteStats of the run

        Raises:
            BatchDeleteFatalError: If a single triple cannot be deleted
            ConfigurationError: If an empty batch would be sent
        """
        stats = BatchDeleteStats(triple_count=len(triples))
        cursor = 0
        batch_size = self.max_batch_size

        while cursor < len(triples):
            batch = triples[cursor:cursor + batch_size]
            if len(batch) == 0:
                raise ConfigurationError(f"Refusing to send an empty batch (batch size {batch_size})")

            self.logger.debug(f"Deleting triples {cursor}..{cursor + len(batch) - 1} of {len(triples)}")
            stats.request_count += 1
            stats.batch_sizes.append(len(batch))

            try:
                await delete_batch(batch)
            except SparqlUpdateError as e:
                stats.failed_request_count += 1

                if len(batch) == 1:
                    serialized = format_triple(batch[0], self.explicit_datatypes)
                    self.logger.error(f"Triple at position {cursor} could not be deleted: {serialized}")
                    raise BatchDeleteFatalError(batch[0], serialized, e) from e

                batch_size = next_batch_size(len(batch))
                self.logger.warning(f"Delete of {len(batch)} triples at position {cursor} failed, "
                                    f"retrying with batch size {batch_size}: {e}")
                continue

            cursor += len(batch)
            batch_size = self.max_batch_size

        self.logger.info(f"Deleted {stats.triple_count} triples in {stats.request_count} requests "
                         f"({stats.failed_request_count} failed)")
        return stats
