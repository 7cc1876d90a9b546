"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- wallpaper_id
- object_key
- user_id
- duration_ms

Usage:
    from wallvault.utils.logging import configure_logging, log_migration_batch_started

    configure_logging('wallvault-api', 'INFO')
    log_migration_batch_started(logger, batch_size=10, pending=10)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (wallvault-api, wallvault-worker, wallvault-cli)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())

        # httpx logs every request URL at INFO, and presigned URLs carry signatures
        logging.getLogger("httpx").setLevel(logging.WARNING)
        cls._configured = True


def _build_log_extra(
    event: str,
    wallpaper_id: Optional[str] = None,
    object_key: Optional[str] = None,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        wallpaper_id: Optional wallpaper ID
        object_key: Optional R2 object key
        user_id: Optional user ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if wallpaper_id:
        extra["wallpaper_id"] = wallpaper_id
    if object_key:
        extra["object_key"] = object_key
    if user_id:
        extra["user_id"] = user_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Migration event functions

def log_migration_batch_started(
    logger: logging.Logger,
    batch_size: int,
    pending: int,
    **kwargs
):
    """
    Log the start of a migration batch.

    Args:
        logger: Logger instance
        batch_size: Requested batch size
        pending: Records selected for this batch
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="migration_batch_started",
        batch_size=batch_size,
        pending=pending,
        **kwargs
    )
    logger.info(f"Starting migration of {pending} wallpapers", extra=extra)


def log_migration_batch_completed(
    logger: logging.Logger,
    attempted: int,
    migrated: int,
    failed: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log the end of a migration batch.

    Args:
        logger: Logger instance
        attempted: Records attempted
        migrated: Records migrated
        failed: Records that failed
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="migration_batch_completed",
        duration_ms=duration_ms,
        attempted=attempted,
        migrated=migrated,
        failed=failed,
        **kwargs
    )
    level = logging.WARNING if failed else logging.INFO
    logger.log(level, f"Migration batch completed: {migrated}/{attempted} migrated", extra=extra)


def log_migration_item_migrated(
    logger: logging.Logger,
    wallpaper_id: str,
    object_key: str,
    size_bytes: int,
    **kwargs
):
    extra = _build_log_extra(
        event="migration_item_migrated",
        wallpaper_id=wallpaper_id,
        object_key=object_key,
        size_bytes=size_bytes,
        **kwargs
    )
    logger.info(f"Migrated wallpaper {wallpaper_id} to R2 key: {object_key}", extra=extra)


def log_migration_item_failed(
    logger: logging.Logger,
    wallpaper_id: str,
    error: str,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log a per-record migration failure.

    Args:
        logger: Logger instance
        wallpaper_id: Wallpaper ID (required)
        error: Error message (required)
        include_traceback: Whether to include stack trace
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="migration_item_failed",
        wallpaper_id=wallpaper_id,
        error=str(error),
        **kwargs
    )
    message = f"Error migrating wallpaper {wallpaper_id}: {error}"

    if include_traceback and sys.exc_info()[0] is not None:
        logger.error(message, extra=extra, exc_info=sys.exc_info())
    else:
        logger.error(message, extra=extra)


# Storage event functions

def log_storage_request(
    logger: logging.Logger,
    operation: str,
    object_key: str,
    status_code: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a completed R2 request.

    Never pass the URL itself: presigned URLs are bearer credentials.
    """
    extra = _build_log_extra(
        event="storage_request",
        object_key=object_key,
        duration_ms=duration_ms,
        operation=operation,
        status_code=status_code,
        **kwargs
    )
    logger.debug(f"Storage request: {operation} {object_key} -> {status_code}", extra=extra)


def log_storage_failure(
    logger: logging.Logger,
    operation: str,
    object_key: str,
    error: str,
    status_code: Optional[int] = None,
    **kwargs
):
    """
    Log a failed R2 request.

    Args:
        logger: Logger instance
        operation: Client operation (put_object, copy_object, ...)
        object_key: Object key involved
        error: Error description
        status_code: HTTP status from R2, when one was received
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_failure",
        object_key=object_key,
        operation=operation,
        error=str(error),
        **kwargs
    )
    if status_code is not None:
        extra["status_code"] = status_code

    logger.error(f"Storage failure: {operation} {object_key} - {error}", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
