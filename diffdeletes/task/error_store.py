"""
Error Store for Diff Deletes

Persists error records in the error graph so failed tasks can point to a
human readable reason.
"""

import logging

from rdflib import Graph, URIRef, Literal
from rdflib.namespace import RDF

from ..db.sparql_inf import SparqlBackendInterface
from ..model.task_model import ErrorRecord
from ..rdf.rdf_terms import DCT, MU, OSLC


class ErrorStore:
    """
    Writes ErrorRecord objects to the triplestore as oslc:Error resources.
    """

    def __init__(self, sparql_impl: SparqlBackendInterface, error_graph: str,
                 error_base: str = 'http://redpencil.data.gift/id/jobs/error/',
                 creator: str = 'harvesting-execute-diff-deletes-service'):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.sparql_impl = sparql_impl
        self.error_graph = error_graph
        self.error_base = error_base
        self.creator = creator

    def build_error_graph(self, record: ErrorRecord) -> Graph:
        """Build the triples describing an error record."""
        graph = Graph()
        error = URIRef(record.uri(self.error_base))
        graph.add((error, RDF.type, OSLC.Error))
        graph.add((error, MU.uuid, Literal(record.id)))
        graph.add((error, DCT.creator, Literal(self.creator)))
        graph.add((error, DCT.created, Literal(record.created)))
        graph.add((error, OSLC.message, Literal(record.message)))
        if record.detail:
            graph.add((error, OSLC.largePreview, Literal(record.detail)))
        return graph

    def build_error_insert(self, record: ErrorRecord) -> str:
        triples = self.build_error_graph(record).serialize(format='nt')
        return f"""
    INSERT DATA {{
      GRAPH {URIRef(self.error_graph).n3()} {{
        {triples}
      }}
    }}
    """

    async def write_error(self, record: ErrorRecord) -> str:
        """
        Persist an error record.

        Returns:
            URI of the stored error

        Raises:
            SparqlUpdateError: If the store rejects the insert
        """
        await self.sparql_impl.execute_sparql_update(self.build_error_insert(record))
        error_uri = record.uri(self.error_base)
        self.logger.info(f"Stored error {error_uri}: {record.message}")
        return error_uri
