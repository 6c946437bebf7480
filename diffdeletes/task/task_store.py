"""
Task Store for Diff Deletes

Reads and writes the task information the service needs in the triplestore:
the deletes file in the input container of a task, and the task status.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from rdflib import URIRef, Literal

from ..db.sparql_inf import SparqlBackendInterface
from ..model.task_model import TaskStatus
from ..rdf.rdf_terms import SPARQL_PREFIXES


class TaskFileNotFoundError(Exception):
    """No deletes file could be found for a task."""

    def __init__(self, task_uri: str, filename: str):
        super().__init__(f"No file named '{filename}' found in the input container of task {task_uri}")
        self.task_uri = task_uri
        self.filename = filename


class TaskStore:
    """
    Task status bookkeeping and file resolution against the triplestore.
    """

    def __init__(self, sparql_impl: SparqlBackendInterface, deletes_filename: str = 'to-remove-triples.ttl'):
        """
        Args:
            sparql_impl: SPARQL backend holding the tasks
            deletes_filename: Logical file name of the file with triples to delete
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.sparql_impl = sparql_impl
        self.deletes_filename = deletes_filename

    def build_status_update(self, task_uri: str, status: TaskStatus, error_uri: Optional[str] = None,
                            modified: Optional[datetime] = None) -> str:
        """
        Build the SPARQL update replacing the status of a task.

        The old status and modified date are removed and the new ones inserted
        in one request. The input container is linked as results container since
        this service produces no files of its own. The error is only attached
        for a failed task.
        """
        task = URIRef(task_uri).n3()
        now = Literal(modified or datetime.now(timezone.utc)).n3()

        error_triple = ""
        if error_uri and status == TaskStatus.FAILURE:
            error_triple = f"{task} task:hasError {URIRef(error_uri).n3()} ."

        return f"""
    {SPARQL_PREFIXES}
    DELETE {{
      GRAPH ?g {{
        {task}
          adms:status ?oldStatus ;
          dct:modified ?oldModified .
      }}
    }}
    INSERT {{
      GRAPH ?g {{
        {task}
          adms:status {URIRef(status.value).n3()} ;
          dct:modified {now} ;
          task:resultsContainer ?container .
        {error_triple}
      }}
    }}
    WHERE {{
      GRAPH ?g {{
        {task}
          adms:status ?oldStatus ;
          dct:modified ?oldModified ;
          task:inputContainer ?container .
      }}
    }}
    """

    async def update_task_status(self, task_uri: str, status: TaskStatus, error_uri: Optional[str] = None) -> None:
        """
        Set the status of a task, attaching an error when it failed.

        Raises:
            SparqlUpdateError: If the store rejects the update
        """
        self.logger.info(f"Setting status of task {task_uri} to {status.name}")
        await self.sparql_impl.execute_sparql_update(self.build_status_update(task_uri, status, error_uri))

    def build_deletes_file_query(self, task_uri: str) -> str:
        # The deletes file can only be told apart from other files in the
        # input container by its file name.
        return f"""
    {SPARQL_PREFIXES}
    SELECT DISTINCT ?physicalFile WHERE {{
      {URIRef(task_uri).n3()}
        a task:Task ;
        task:inputContainer ?inputContainer .

      ?inputContainer
        a nfo:DataContainer ;
        task:hasFile ?logicalFile .

      ?logicalFile
        a nfo:FileDataObject ;
        nfo:fileName {Literal(self.deletes_filename).n3()} .

      ?physicalFile
        a nfo:FileDataObject ;
        nie:dataSource ?logicalFile .
    }}
    LIMIT 1
    """

    async def get_deletes_file(self, task_uri: str) -> Optional[str]:
        """
        Find the physical file with the triples to delete for a task.

        Returns:
            URI of the physical file (``share://...``), or None when there is none

        Raises:
            SparqlQueryError: If the query fails
        """
        results = await self.sparql_impl.execute_sparql_query(self.build_deletes_file_query(task_uri))
        if not results:
            return None
        physical_file = results[0].get('physicalFile')
        if isinstance(physical_file, dict):
            physical_file = physical_file.get('value')
        return physical_file

    async def require_deletes_file(self, task_uri: str) -> str:
        """
        Like get_deletes_file, but a missing file is an error.

        Raises:
            TaskFileNotFoundError: If the task has no deletes file
        """
        physical_file = await self.get_deletes_file(task_uri)
        if not physical_file:
            raise TaskFileNotFoundError(task_uri, self.deletes_filename)
        return physical_file
