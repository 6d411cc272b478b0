"""Monitoring configuration for the word sheet."""
from prometheus_client import Counter, Histogram, start_http_server

# Word processing metrics
words_processed = Counter(
    "wordsheet_words_processed_total",
    "Total number of single-word processing runs",
    ["outcome"],
)

enrichment_errors = Counter(
    "wordsheet_enrichment_errors_total",
    "Total number of failed enrichment lookups",
    ["error_type"],
)

lock_timeouts = Counter(
    "wordsheet_lock_timeouts_total",
    "Total number of operations abandoned waiting for the edit lock",
)

# Batch metrics
batch_windows = Counter(
    "wordsheet_batch_windows_total",
    "Total number of batch windows written",
)

batch_rows_refreshed = Counter(
    "wordsheet_batch_rows_refreshed_total",
    "Total number of rows refreshed by the batch pipeline",
)

window_duration = Histogram(
    "wordsheet_batch_window_duration_seconds",
    "Duration of one batch window in seconds",
    buckets=[1, 5, 15, 30, 60, 120],
)

# Learning metrics
review_feedback = Counter(
    "wordsheet_review_feedback_total",
    "Total number of review answers",
    ["tier"],
)

quiz_sessions = Counter(
    "wordsheet_quiz_sessions_total",
    "Total number of recorded quiz sessions",
)

quiz_usage_resets = Counter(
    "wordsheet_quiz_usage_resets_total",
    "Total number of global quiz usage resets",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
