"""
Abstract interface for Diff Deletes SPARQL backend implementations.

This module defines the abstract base class for the triplestore access the
service needs: SELECT queries to find tasks and files, and SPARQL updates to
delete triples and to record task status and errors.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional


class SparqlBackendError(Exception):
    """Base class for failures reported by a SPARQL backend."""

    def __init__(self, message: str, status: Optional[int] = None, text: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.text = text


class SparqlQueryError(SparqlBackendError):
    """A SPARQL query was rejected by the store or could not be sent."""
    pass


class SparqlUpdateError(SparqlBackendError):
    """A SPARQL update was rejected by the store or could not be sent."""
    pass


class SparqlBackendInterface(ABC):
    """
    Abstract interface for backend-specific SPARQL implementations.

    Only two methods are used by the service:
    - execute_sparql_query() for SELECT queries
    - execute_sparql_update() for INSERT, DELETE and MODIFY operations

    An update is applied atomically by the store: either all of it or nothing.
    """

    @abstractmethod
    async def execute_sparql_query(self, sparql_query: str) -> List[Dict[str, Any]]:
        """
        Execute a SPARQL SELECT query.

        Args:
            sparql_query: SPARQL query string

        Returns:
            List of result dictionaries with variable bindings. URIs are
            returned as strings, literals as dicts with value/datatype/lang.

        Raises:
            SparqlQueryError: If the query fails
        """
        pass

    @abstractmethod
    async def execute_sparql_update(self, sparql_update: str) -> None:
        """
        Execute a SPARQL 1.1 UPDATE operation.

        Args:
            sparql_update: SPARQL UPDATE string

        Raises:
            SparqlUpdateError: If the update fails for any reason
        """
        pass

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
        pass
