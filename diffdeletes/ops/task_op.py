"""
Abstract base class for task operations.

A task operation processes one task and reports its outcome as an
OperationResult. run() never raises: an exception escaping execute() is turned
into an ERROR result.
"""

import time
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from datetime import datetime


class OperationStatus(Enum):
    """Status of a task operation."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class OperationResult:
    """Result of a task operation."""
    status: OperationStatus
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[BaseException] = None
    warnings: List[str] = field(default_factory=list)

    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    def is_error(self) -> bool:
        return self.status == OperationStatus.ERROR


class TaskOp(ABC):
    """Abstract base class for operations on a single task.

    Tracks status and timing of the operation and logs its outcome.
    """

    def __init__(self, task_uri: str, operation_id: Optional[str] = None):
        """Initialize the operation.

        Args:
            task_uri: URI of the task the operation works on
            operation_id: Optional unique identifier for this operation
        """
        self.task_uri = task_uri
        self.operation_id = operation_id or f"{self.__class__.__name__.lower()}_{datetime.now():%Y%m%d_%H%M%S_%f}"
        self.status = OperationStatus.PENDING
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.result: Optional[OperationResult] = None
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    async def execute(self) -> OperationResult:
        """Execute the operation.

        Returns:
            OperationResult with the outcome of the operation
        """
        pass

    @abstractmethod
    def get_operation_name(self) -> str:
        """Get a human-readable name for this operation."""
        pass

    async def run(self) -> OperationResult:
        """Run the operation with status tracking and error handling.

        Returns:
            OperationResult with the outcome of the operation
        """
        self.logger.info(f"Starting {self.get_operation_name()} (ID: {self.operation_id})")

        self.status = OperationStatus.RUNNING
        self.start_time = time.time()

        try:
            self.result = await self.execute()
        except Exception as e:
            self.logger.exception(f"Exception during {self.get_operation_name()}")
            self.result = OperationResult(
                status=OperationStatus.ERROR,
                message=f"Unexpected error: {str(e)}",
                details={'task_uri': self.task_uri},
                error=e
            )
        finally:
            self.end_time = time.time()

        self.status = self.result.status
        self.result.details['duration_seconds'] = self.get_duration()

        if self.result.is_success():
            self.logger.info(f"Successfully completed {self.get_operation_name()} in {self.get_duration():.2f}s")
        else:
            self.logger.error(f"Failed {self.get_operation_name()}: {self.result.message}")

        return self.result

    def get_duration(self) -> Optional[float]:
        """Get the duration of the operation in seconds, None if not started."""
        if self.start_time is None:
            return None
        end_time = self.end_time or time.time()
        return end_time - self.start_time

    def update_progress(self, message: str):
        self.logger.info(f"Task {self.task_uri}: {message}")
