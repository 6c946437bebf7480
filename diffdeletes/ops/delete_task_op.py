"""
Execute Diff Deletes Task Operation.

Processes one delete task end to end: mark it ongoing, find the file with the
triples to remove, parse it, delete the triples in batches and mark the task
successful. A failure at any stage is stored as an error record, the task is
marked failed with a reference to it, and the outcome is returned as an
OperationResult. Nothing is raised to the caller.
"""

from typing import Optional

from .task_op import TaskOp, OperationResult, OperationStatus
from .batched_delete_op import BatchedDeleteExecutor, BatchDeleteFatalError, DeleteBatch
from ..model.task_model import TaskStatus, ErrorRecord
from ..rdf.rdf_utils import async_load_triples_file, share_uri_to_path
from ..task.error_store import ErrorStore
from ..task.task_store import TaskStore


STAGE_MESSAGES = {
    'start': "Failed to mark the task as ongoing",
    'resolve': "Failed to find the deletes file of the task",
    'load': "Failed to load the deletes file",
    'delete': "Failed to delete the triples",
    'finish': "Failed to mark the task as successful",
}


class DeleteTaskOp(TaskOp):
    """Deletes the triples listed in the deletes file of a task."""

    def __init__(self,
                 task_uri: str,
                 task_store: TaskStore,
                 error_store: ErrorStore,
                 executor: BatchedDeleteExecutor,
                 delete_batch: DeleteBatch,
                 share_prefix: str = 'share://',
                 share_root: str = '/share/',
                 operation_id: Optional[str] = None):
        """Initialize the delete task operation.

        Args:
            task_uri: URI of the task to process
            task_store: Task status and file lookups
            error_store: Persistence of error records
            executor: Batched delete executor
            delete_batch: Operation deleting one batch in the target graph
            share_prefix: URI prefix of physical files
            share_root: Directory the share prefix maps to
            operation_id: Optional unique identifier for this operation
        """
        super().__init__(task_uri, operation_id)

        self.task_store = task_store
        self.error_store = error_store
        self.executor = executor
        self.delete_batch = delete_batch
        self.share_prefix = share_prefix
        self.share_root = share_root

        self.stage = 'start'

    def get_operation_name(self) -> str:
        return f"Execute diff deletes for task {self.task_uri}"

    async def execute(self) -> OperationResult:
        try:
            self.stage = 'start'
            await self.task_store.update_task_status(self.task_uri, TaskStatus.ONGOING)

            self.stage = 'resolve'
            file_uri = await self.task_store.require_deletes_file(self.task_uri)
            file_path = share_uri_to_path(file_uri, self.share_prefix, self.share_root)

            self.stage = 'load'
            self.update_progress(f"Loading {file_path}")
            triples = await async_load_triples_file(file_path)

            self.stage = 'delete'
            self.update_progress(f"Deleting {len(triples)} triples")
            stats = await self.executor.execute(triples, self.delete_batch)

            self.stage = 'finish'
            await self.task_store.update_task_status(self.task_uri, TaskStatus.SUCCESS)

        except Exception as e:
            return await self._fail(e)

        return OperationResult(
            status=OperationStatus.SUCCESS,
            message=f"Deleted {stats.triple_count} triples for task {self.task_uri}",
            details={
                'task_uri': self.task_uri,
                'file_uri': file_uri,
                'triple_count': stats.triple_count,
                'request_count': stats.request_count,
                'failed_request_count': stats.failed_request_count,
            }
        )

    def _describe_error(self, error: Exception) -> ErrorRecord:
        message = f"{STAGE_MESSAGES[self.stage]}: {error}"
        if isinstance(error, BatchDeleteFatalError):
            detail = f"Triple: {error.serialized}\nCause: {error.cause!r}"
        else:
            cause = error.__cause__ or getattr(error, 'cause', None)
            detail = f"{error!r}" + (f"\nCause: {cause!r}" if cause is not None else "")
        return ErrorRecord(message=message, detail=detail)

    async def _fail(self, error: Exception) -> OperationResult:
        self.logger.exception(f"Task {self.task_uri} failed during stage '{self.stage}'")
        record = self._describe_error(error)
        result = OperationResult(
            status=OperationStatus.ERROR,
            message=record.message,
            details={'task_uri': self.task_uri, 'stage': self.stage},
            error=error
        )

        error_uri = None
        try:
            error_uri = await self.error_store.write_error(record)
            result.details['error_uri'] = error_uri
        except Exception as e:
            self.logger.exception("Could not store the error record")
            result.warnings.append(f"Error record not stored: {e}")

        try:
            await self.task_store.update_task_status(self.task_uri, TaskStatus.FAILURE, error_uri)
        except Exception as e:
            self.logger.exception("Could not mark the task as failed")
            result.warnings.append(f"Task status not updated: {e}")

        return result
