"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

# Response time metrics
api_request_duration = Histogram(
    "api_request_duration_seconds", "API request duration in seconds", ["method", "endpoint", "status"]
)

# Chat request metrics
chat_requests_created_total = Counter("chat_requests_created_total", "Total number of chat requests created")

chat_requests_denied_total = Counter(
    "chat_requests_denied_total", "Total number of chat requests refused before creation", ["reason"]
)

chat_requests_resolved_total = Counter(
    "chat_requests_resolved_total", "Total number of chat requests reaching a terminal status", ["status"]
)

chat_request_accept_seconds = Histogram(
    "chat_request_accept_seconds", "Time to run the transactional accept path"
)

eligibility_fail_open_total = Counter(
    "eligibility_fail_open_total", "Eligibility checks allowed because profile lookup failed"
)

# Chat filter metrics
chat_filters_saved_total = Counter("chat_filters_saved_total", "Total number of chat filters saved", ["visible"])
