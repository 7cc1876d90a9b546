"""
Prometheus metrics definitions for FastAPI and Celery workers.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Gauge, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# R2 storage metrics
r2_requests_total = Counter(
    'r2_requests_total',
    'Total requests sent to R2',
    ['operation', 'status']
)

r2_request_duration_seconds = Histogram(
    'r2_request_duration_seconds',
    'R2 request duration in seconds',
    ['operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Migration metrics
migration_batches_total = Counter(
    'migration_batches_total',
    'Total migration batches run'
)

migration_records_total = Counter(
    'migration_records_total',
    'Wallpapers processed by migration batches',
    ['outcome']
)

downloads_signed_total = Counter(
    'downloads_signed_total',
    'Presigned download URLs issued'
)

# Celery task metrics
celery_tasks_running = Gauge(
    'celery_tasks_running',
    'Celery tasks currently running',
    ['task']
)

celery_tasks_completed_total = Counter(
    'celery_tasks_completed_total',
    'Celery tasks finished',
    ['task', 'state']
)

celery_tasks_failed_total = Counter(
    'celery_tasks_failed_total',
    'Celery tasks that raised',
    ['task']
)
