"""
HTTP server exposing Celery worker metrics to Prometheus.
Workers have no FastAPI app, so prometheus_client serves /metrics itself.
"""
import logging
from typing import Optional

from prometheus_client import start_http_server

logger = logging.getLogger(__name__)

_started_port: Optional[int] = None


def start_metrics_server(port: int = 9090) -> bool:
    """
    Start the Prometheus exposition server once per process.

    Args:
        port: Port to listen on; 0 disables the server

    Returns:
        True if a server is running on return
    """
    global _started_port

    if port <= 0:
        logger.info("Worker metrics server disabled")
        return False
    if _started_port is not None:
        return True

    start_http_server(port)
    _started_port = port
    logger.info(f"Metrics server started on port {port}")
    return True
