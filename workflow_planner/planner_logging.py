"""Logging and observability utilities for the workflow planner.

This module provides structured logging, performance monitoring,
and observability hooks for the planning pipeline.
"""

from __future__ import annotations

import json
import threading
import time
import logging as std_logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
from functools import wraps

ROOT_LOGGER_NAME = "workflow_planner"


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Setup structured logging for the planner."""

    logger = std_logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    detailed_formatter = std_logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # stdout carries the MCP stdio transport, so the console handler writes to stderr
    console_handler = std_logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(detailed_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = std_logging.FileHandler(log_file)
        file_handler.setLevel(std_logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    logger.info("Workflow planner logging initialized")


class JsonFormatter(std_logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: std_logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class PerformanceMonitor:
    """Collect timing and count metrics for planning operations."""

    def __init__(self):
        self.metrics: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def record_metric(self, name: str, value: Any, tags: Optional[Dict[str, str]] = None) -> None:
        """Record a performance metric."""
        metric = {
            "timestamp": datetime.utcnow().isoformat(),
            "name": name,
            "value": value,
            "tags": tags or {}
        }

        with self._lock:
            self.metrics.setdefault(name, []).append(metric)

        logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.performance")
        logger.debug(f"Metric recorded: {name}={value}", extra={"extra_fields": metric})

    def get_metrics(self, name: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Get recorded metrics."""
        with self._lock:
            if name:
                return {name: list(self.metrics.get(name, []))}
            return {key: list(values) for key, values in self.metrics.items()}

    def clear(self) -> None:
        with self._lock:
            self.metrics.clear()


performance_monitor = PerformanceMonitor()


def log_performance(operation_name: str):
    """Decorator to log performance metrics for operations."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.performance")

            try:
                logger.debug(f"Starting operation: {operation_name}")
                result = func(*args, **kwargs)

                duration = time.perf_counter() - start_time
                performance_monitor.record_metric(
                    f"{operation_name}_duration",
                    duration,
                    {"status": "success"}
                )
                logger.info(
                    f"Completed operation: {operation_name} in {duration:.3f}s",
                    extra={"extra_fields": {
                        "operation": operation_name,
                        "duration": duration,
                        "status": "success"
                    }}
                )
                return result

            except Exception as e:
                duration = time.perf_counter() - start_time
                performance_monitor.record_metric(
                    f"{operation_name}_duration",
                    duration,
                    {"status": "error", "error_type": type(e).__name__}
                )
                logger.error(
                    f"Failed operation: {operation_name} after {duration:.3f}s - {str(e)}",
                    extra={"extra_fields": {
                        "operation": operation_name,
                        "duration": duration,
                        "status": "error",
                        "error_type": type(e).__name__,
                        "error_message": str(e)
                    }},
                    exc_info=True
                )
                raise

        return wrapper
    return decorator


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Context manager to log operations with custom fields."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.operations")
    start_time = time.perf_counter()

    logger.debug(f"Starting operation: {operation_name}", extra={"extra_fields": {
        "operation": operation_name,
        "status": "started",
        **extra_fields
    }})

    try:
        yield

        duration = time.perf_counter() - start_time
        logger.debug(f"Completed operation: {operation_name} in {duration:.3f}s", extra={"extra_fields": {
            "operation": operation_name,
            "status": "completed",
            "duration": duration,
            **extra_fields
        }})

    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error(f"Failed operation: {operation_name} after {duration:.3f}s - {str(e)}", extra={"extra_fields": {
            "operation": operation_name,
            "status": "failed",
            "duration": duration,
            "error_type": type(e).__name__,
            "error_message": str(e),
            **extra_fields
        }}, exc_info=True)

        raise


class ObservabilityHooks:
    """Callbacks that hosts can attach to planning events."""

    def __init__(self):
        self.hooks: Dict[str, List[Callable[..., Any]]] = {}
        self.logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.observability")

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback for a specific event type."""
        self.hooks.setdefault(event_type, []).append(callback)
        self.logger.debug(f"Registered hook for event: {event_type}")

    def unregister_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        callbacks = self.hooks.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def trigger_hooks(self, event_type: str, **data) -> None:
        """Trigger all callbacks for a specific event type."""
        callbacks = list(self.hooks.get(event_type, []))
        if callbacks:
            self.logger.debug(f"Triggering {len(callbacks)} hooks for event: {event_type}")
        for hook in callbacks:
            try:
                hook(**data)
            except Exception as e:
                self.logger.error(f"Hook failed for event {event_type}: {e}")

    def log_planning_event(self, event_type: str, workflow_id: Optional[str] = None, **data) -> None:
        """Log a planning event and trigger hooks."""
        event_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "event_type": event_type,
            "workflow_id": workflow_id,
            **data
        }

        self.logger.info(f"Planning event: {event_type}", extra={"extra_fields": event_data})

        hook_data = {k: v for k, v in event_data.items() if k != "event_type"}
        self.trigger_hooks(event_type, **hook_data)


observability_hooks = ObservabilityHooks()


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields):
    """Log an error with rich context information."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.errors")

    error_data = {
        "timestamp": datetime.utcnow().isoformat(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **extra_fields
    }

    logger.error(
        f"Error in {context.get('operation', 'unknown operation')}: {str(error)}",
        extra={"extra_fields": error_data},
        exc_info=True
    )


# Convenience functions for common planning events
def log_requirements_extracted(requirement_count: int, complexity: str, persona: str, **extra_fields):
    observability_hooks.log_planning_event(
        "requirements_extracted",
        requirement_count=requirement_count,
        complexity=complexity,
        persona=persona,
        **extra_fields
    )


def log_workflow_generated(workflow_id: str, phase_count: int, task_count: int, **extra_fields):
    observability_hooks.log_planning_event(
        "workflow_generated",
        workflow_id=workflow_id,
        phase_count=phase_count,
        task_count=task_count,
        **extra_fields
    )


def log_quality_report(workflow_id: str, profile: str, overall_score: int, critical_issues: int, **extra_fields):
    observability_hooks.log_planning_event(
        "quality_report_ready",
        workflow_id=workflow_id,
        profile=profile,
        overall_score=overall_score,
        critical_issues=critical_issues,
        **extra_fields
    )


def log_gate_failure(gate_id: str, reason: str, **extra_fields):
    observability_hooks.log_planning_event("gate_failed", gate_id=gate_id, reason=reason, **extra_fields)


_default_logging_initialized = False


def initialize_default_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path] = None) -> None:
    """Initialize logging once per process."""
    global _default_logging_initialized
    if not _default_logging_initialized:
        setup_logging(log_level, log_file)
        _default_logging_initialized = True
