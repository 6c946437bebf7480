"""Delta Endpoint for Diff Deletes

Receives delta notifications, picks out the newly created "execute diff
deletes" tasks and processes them after the notification has been answered.
"""

from typing import List
import logging

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import TypeAdapter, ValidationError

from ..model.delta_model import DeltaChangeset, DeltaResponse, get_task_uris
from ..rdf.rdf_terms import TASK


_CHANGESETS_ADAPTER = TypeAdapter(List[DeltaChangeset])


class DeltaEndpoint:
    """Delta notification endpoint handler."""

    def __init__(self, diffdeletes_impl):
        self.diffdeletes_impl = diffdeletes_impl
        self.logger = logging.getLogger(f"{__name__}.DeltaEndpoint")
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup delta routes."""

        @self.router.get(
            "/",
            response_class=PlainTextResponse,
            summary="Service greeting"
        )
        async def hello():
            return "Hello from harvesting-execute-diff-deletes-service"

        @self.router.post(
            "/delta",
            response_model=DeltaResponse,
            summary="Receive delta notification",
            description="Acknowledge a delta message and process the execute-diff-deletes tasks it creates"
        )
        async def delta(request: Request, background_tasks: BackgroundTasks):
            return await self._handle_delta(request, background_tasks)

    async def _handle_delta(self, request: Request, background_tasks: BackgroundTasks):
        try:
            body = await request.json()
            changesets = _CHANGESETS_ADAPTER.validate_python(body)
        except (ValueError, ValidationError) as e:
            background_tasks.add_task(self.diffdeletes_impl.record_error, e, "Could not parse delta message")
            return JSONResponse(
                status_code=400,
                content={"message": f"Invalid delta message: {e}", "task_count": 0}
            )

        task_uris = get_task_uris(changesets, str(TASK.operation), self.diffdeletes_impl.operation)
        if not task_uris:
            self.logger.debug("No execute-diff-deletes tasks in delta message")
            return DeltaResponse(message="No tasks to process", task_count=0)

        self.logger.info(f"Scheduling {len(task_uris)} task(s): {', '.join(task_uris)}")
        background_tasks.add_task(self.diffdeletes_impl.process_delete_tasks, task_uris)
        return DeltaResponse(message="Processing", task_count=len(task_uris))
