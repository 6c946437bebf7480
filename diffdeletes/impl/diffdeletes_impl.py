import asyncio
import logging
import traceback
from typing import List, Optional

from diffdeletes.config.config_loader import DiffDeletesConfig, get_config
from diffdeletes.db.sparql_inf import SparqlBackendInterface
from diffdeletes.db.sparql_impl import HttpSparqlImpl
from diffdeletes.model.task_model import ErrorRecord
from diffdeletes.ops.batched_delete_op import BatchedDeleteExecutor, SparqlDeleteOperation
from diffdeletes.ops.delete_task_op import DeleteTaskOp
from diffdeletes.ops.task_op import OperationResult
from diffdeletes.task.error_store import ErrorStore
from diffdeletes.task.task_store import TaskStore


class DiffDeletesImpl:
    """
    Builds the service components from the configuration and processes tasks.

    The SPARQL backend can be passed in to run against another store, e.g. an
    in-memory one in tests.
    """

    def __init__(self, config: Optional[DiffDeletesConfig] = None,
                 sparql_impl: Optional[SparqlBackendInterface] = None):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config or get_config()

        graphs_config = self.config.get_graphs_config()
        deletes_config = self.config.get_deletes_config()
        errors_config = self.config.get_errors_config()

        self.sparql_impl = sparql_impl or HttpSparqlImpl.from_config(self.config.get_sparql_config())

        explicit_datatypes = self.config.get_explicit_datatypes()
        self.executor = BatchedDeleteExecutor(self.config.get_max_batch_size(), explicit_datatypes)
        self.delete_operation = SparqlDeleteOperation(self.sparql_impl, graphs_config['target_graph'],
                                                      explicit_datatypes)

        self.task_store = TaskStore(self.sparql_impl, deletes_config['deletes_filename'])
        self.error_store = ErrorStore(self.sparql_impl, graphs_config['error_graph'],
                                      errors_config['error_base'], errors_config['creator'])

        self.share_prefix = deletes_config['share_prefix']
        self.share_root = deletes_config['share_root']
        self.write_errors = bool(errors_config['write_errors'])
        self.operation = self.config.get_task_config()['operation']

        self.logger.info(f"Deleting from graph {graphs_config['target_graph']} "
                         f"with batches of at most {self.executor.max_batch_size} triples")

    def create_delete_task_op(self, task_uri: str) -> DeleteTaskOp:
        return DeleteTaskOp(
            task_uri=task_uri,
            task_store=self.task_store,
            error_store=self.error_store,
            executor=self.executor,
            delete_batch=self.delete_operation,
            share_prefix=self.share_prefix,
            share_root=self.share_root,
        )

    async def process_delete_task(self, task_uri: str) -> OperationResult:
        """Process one delete task; the outcome is returned, never raised."""
        return await self.create_delete_task_op(task_uri).run()

    async def process_delete_tasks(self, task_uris: List[str]) -> List[OperationResult]:
        """Process several delete tasks concurrently."""
        if not task_uris:
            return []
        return list(await asyncio.gather(*(self.process_delete_task(task_uri) for task_uri in task_uris)))

    async def record_error(self, error: BaseException, message: Optional[str] = None) -> Optional[str]:
        """
        Log an error that is not tied to a task and store it when enabled.

        Returns:
            URI of the stored error record, or None when it was not stored
        """
        self.logger.error(f"{message or 'Unexpected error'}: {error!r}")
        if not self.write_errors:
            return None

        detail = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        record = ErrorRecord(message=message or str(error) or repr(error), detail=detail)
        try:
            return await self.error_store.write_error(record)
        except Exception:
            self.logger.exception("Could not store the error record")
            return None

    async def close(self) -> None:
        await self.sparql_impl.close()
