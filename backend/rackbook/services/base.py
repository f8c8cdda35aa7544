# backend/rackbook/services/base.py
"""
Service base for rackbook.

Every service owns a session, commits through ``transaction()`` and times its
public operations with ``@BaseService.measure_operation``. Timings go to the
per-class stats kept here, to the slow-operation warning, and to Prometheus.
"""

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import Any, Callable, ClassVar, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class OperationStats:
    """Running totals for one measured operation."""

    count: int = 0
    total_time: float = 0.0
    success_count: int = 0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)
        if success:
            self.success_count += 1

    def summary(self) -> Dict[str, Any]:
        failures = self.count - self.success_count
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "total_time": self.total_time,
            "success_rate": self.success_count / self.count,
            "success_count": self.success_count,
            "failure_count": failures,
        }


class BaseService:
    """
    Shared plumbing for rackbook services.

    Subclasses pass their session to ``super().__init__`` and build their
    repositories through ``RepositoryFactory``.
    """

    # service class name -> operation name -> stats
    _class_metrics: ClassVar[Dict[str, Dict[str, OperationStats]]] = {}

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the session when the block succeeds, roll back otherwise.

        Raises:
            ServiceException: If the store rejects the work
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction rolled back: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method, sync or async.

        Usage:
            @BaseService.measure_operation("validate_series")
            def validate_series(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]
            func._is_measured = True  # type: ignore[attr-defined]

            if asyncio.iscoroutinefunction(func):

                @wraps(func)
                async def async_wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                    with self.measure_operation_context(operation_name):
                        return await func(self, *args, **kwargs)

                return cast(F, async_wrapper)

            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                with self.measure_operation_context(operation_name):
                    return func(self, *args, **kwargs)

            return cast(F, wrapper)

        return decorator

    @contextmanager
    def measure_operation_context(self, operation_name: str) -> Iterator[None]:
        """Time a block the same way ``measure_operation`` times a method."""
        started = time.perf_counter()
        error_type: Optional[str] = None
        try:
            yield
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            self._finish_operation(operation_name, time.perf_counter() - started, error_type)

    def _finish_operation(
        self, operation_name: str, elapsed: float, error_type: Optional[str]
    ) -> None:
        success = error_type is None
        self._record_metric(operation_name, elapsed, success)

        if elapsed > settings.slow_operation_threshold_seconds:
            self.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

        if settings.prometheus_enabled:
            prometheus_metrics.record_service_operation(
                service=self.__class__.__name__,
                operation=operation_name,
                duration=elapsed,
                status="success" if success else "error",
                error_type=error_type,
            )

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        stats = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        stats.setdefault(operation, OperationStats()).add(elapsed, success)

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation timing and success figures for this service class."""
        stats = BaseService._class_metrics.get(self.__class__.__name__, {})
        return {name: entry.summary() for name, entry in stats.items() if entry.count}

    def reset_metrics(self) -> None:
        BaseService._class_metrics.pop(self.__class__.__name__, None)
        self.logger.info(f"Metrics reset for {self.__class__.__name__}")
