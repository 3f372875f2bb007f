"""
Prometheus metrics definitions for the API.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

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

# Generation metrics
generations_total = Counter(
    'generations_total',
    'Generation pipeline runs by outcome',
    ['status', 'identity']  # status: completed|partial|failed|blocked, identity: user|anonymous
)

generation_duration_seconds = Histogram(
    'generation_duration_seconds',
    'End-to-end generation pipeline duration in seconds',
    ['status'],
    buckets=[1.0, 5.0, 10.0, 20.0, 30.0, 45.0, 60.0, 90.0, 120.0]
)

images_rehosted_total = Counter(
    'images_rehosted_total',
    'Generated images copied to the image host',
    ['outcome']  # primary|fallback|retried|failed
)

# AI provider metrics
ai_provider_requests_total = Counter(
    'ai_provider_requests_total',
    'Total AI provider requests',
    ['provider', 'operation']
)

ai_provider_failures_total = Counter(
    'ai_provider_failures_total',
    'Total AI provider failures',
    ['provider', 'operation']
)

ai_provider_latency_seconds = Histogram(
    'ai_provider_latency_seconds',
    'AI provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 90.0]
)

# Top-up metrics
topups_created_total = Counter(
    'topups_created_total',
    'Top-up transactions created'
)

topups_settled_total = Counter(
    'topups_settled_total',
    'Top-up transactions credited'
)

topup_notifications_total = Counter(
    'topup_notifications_total',
    'Payment gateway notifications received',
    ['status']
)
