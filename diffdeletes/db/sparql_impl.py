"""
HTTP SPARQL Implementation for Diff Deletes

This module provides the SparqlBackendInterface implementation that talks to a
SPARQL 1.1 protocol endpoint (Virtuoso, or mu-authorization in front of it)
over HTTP with aiohttp.

Requests are sent with the ``mu-auth-sudo`` header when configured so that the
service can read tasks and delete triples regardless of access rights.
"""

import asyncio
import logging
from typing import Dict, List, Any, Optional

import aiohttp

from .sparql_inf import SparqlBackendInterface, SparqlQueryError, SparqlUpdateError


class HttpSparqlImpl(SparqlBackendInterface):
    """
    SparqlBackendInterface implementation using HTTP SPARQL endpoints.
    """

    def __init__(self, query_url: str, update_url: Optional[str] = None,
                 timeout: float = 60, sudo: bool = True,
                 username: Optional[str] = None, password: Optional[str] = None,
                 update_field: str = 'query'):
        """
        Initialize the HTTP SPARQL implementation.

        Args:
            query_url: SPARQL query endpoint URL
            update_url: SPARQL update endpoint URL (default: query_url)
            timeout: Request timeout in seconds
            sudo: Send the mu-auth-sudo header with every request
            username: Optional username for basic authentication
            password: Optional password for basic authentication
            update_field: Form field carrying the update string
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.query_url = query_url
        self.update_url = update_url or query_url
        self.timeout = timeout
        self.sudo = sudo
        self.username = username
        self.password = password
        self.update_field = update_field

        # HTTP session for connection pooling
        self._session: Optional[aiohttp.ClientSession] = None

        self.logger.info(f"Initialized HTTP SPARQL implementation: {self.query_url}")

    @classmethod
    def from_config(cls, sparql_config: Dict[str, Any]) -> "HttpSparqlImpl":
        """Create an instance from the ``sparql`` configuration section."""
        return cls(
            query_url=sparql_config['query_url'],
            update_url=sparql_config.get('update_url'),
            timeout=float(sparql_config.get('timeout', 60)),
            sudo=bool(sparql_config.get('sudo', True)),
            username=sparql_config.get('username'),
            password=sparql_config.get('password'),
            update_field=sparql_config.get('update_field', 'query'),
        )

    def _get_headers(self, accept: Optional[str] = None) -> Dict[str, str]:
        headers = {}
        if self.sudo:
            headers['mu-auth-sudo'] = 'true'
        if accept:
            headers['Accept'] = accept
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session with authentication."""
        if self._session is None or self._session.closed:
            auth = None
            if self.username and self.password:
                auth = aiohttp.BasicAuth(self.username, self.password)

            timeout = aiohttp.ClientTimeout(total=self.timeout)

            connector = aiohttp.TCPConnector(
                keepalive_timeout=15,
                limit=20,
                enable_cleanup_closed=True,
            )

            self._session = aiohttp.ClientSession(
                auth=auth,
                timeout=timeout,
                connector=connector
            )
        return self._session

    async def execute_sparql_query(self, sparql_query: str) -> List[Dict[str, Any]]:
        """
        Execute a SPARQL SELECT query against the endpoint.

        Args:
            sparql_query: SPARQL query string

        Returns:
            List of result dictionaries with variable bindings
        """
        self.logger.debug(f"Query: {sparql_query}")

        try:
            session = await self._get_session()
            async with session.post(
                self.query_url,
                data={'query': sparql_query},
                headers=self._get_headers('application/sparql-results+json')
            ) as response:
                if response.status != 200:
                    error_text = await response.text(errors="replace")
                    self.logger.error(f"SPARQL query failed: {response.status} - {error_text}")
                    raise SparqlQueryError(f"SPARQL query failed: {response.status} - {error_text}",
                                           status=response.status, text=error_text)

                result_data = await response.json(content_type=None)
                return self._convert_select_results(result_data)

        except SparqlQueryError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Error executing SPARQL query: {e!r}")
            raise SparqlQueryError(f"SPARQL query could not be executed: {e!r}") from e
        except Exception as e:
            self.logger.exception("Unexpected error executing SPARQL query")
            raise SparqlQueryError(f"SPARQL query failed unexpectedly: {e!r}") from e

    async def execute_sparql_update(self, sparql_update: str) -> None:
        """
        Execute a SPARQL 1.1 UPDATE operation against the endpoint.

        Args:
            sparql_update: SPARQL UPDATE string

        Raises:
            SparqlUpdateError: On any failure, including non-2xx answers and timeouts
        """
        self.logger.debug(f"Update: {sparql_update[:500]}{'...' if len(sparql_update) > 500 else ''}")

        try:
            session = await self._get_session()
            async with session.post(
                self.update_url,
                data={self.update_field: sparql_update},
                headers=self._get_headers('application/sparql-results+json')
            ) as response:
                if 200 <= response.status < 300:
                    self.logger.debug("SPARQL update executed successfully")
                    return

                error_text = await response.text(errors="replace")
                self.logger.warning(f"SPARQL update failed: {response.status} - {error_text[:500]}")
                raise SparqlUpdateError(f"SPARQL update failed: {response.status} - {error_text}",
                                        status=response.status, text=error_text)

        except SparqlUpdateError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Error executing SPARQL update: {e!r}")
            raise SparqlUpdateError(f"SPARQL update could not be executed: {e!r}") from e
        except Exception as e:
            self.logger.exception("Unexpected error executing SPARQL update")
            raise SparqlUpdateError(f"SPARQL update failed unexpectedly: {e!r}") from e

    def _convert_select_results(self, sparql_results: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Convert SPARQL JSON results to the standardized binding format.

        Args:
            sparql_results: Raw results from the SPARQL endpoint

        Returns:
            List of result dictionaries with variable bindings
        """
        bindings = sparql_results.get('results', {}).get('bindings', [])
        results = []

        for binding in bindings:
            result = {}
            for var, value_info in binding.items():
                if value_info.get('type') == 'uri':
                    result[var] = value_info['value']
                elif value_info.get('type') in ('literal', 'typed-literal'):
                    result[var] = {
                        'value': value_info['value'],
                        'datatype': value_info.get('datatype'),
                        'lang': value_info.get('xml:lang')
                    }
                elif value_info.get('type') == 'bnode':
                    result[var] = f"_:{value_info['value']}"
                else:
                    result[var] = value_info['value']

            results.append(result)

        return results

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
