"""Monitoring configuration for the drill."""
from prometheus_client import Counter, Gauge, start_http_server

# Round metrics
rounds_started = Counter(
    "derdiedas_rounds_started_total",
    "Total number of drill rounds started",
)

rounds_completed = Counter(
    "derdiedas_rounds_completed_total",
    "Total number of drill rounds played to the end",
)

queue_length = Gauge(
    "derdiedas_queue_length",
    "Number of items waiting in the current round's queue",
)

# Answer metrics
answers = Counter(
    "derdiedas_answers_total",
    "Total number of answers submitted",
    ["phase", "result"],
)

items_completed = Counter(
    "derdiedas_items_completed_total",
    "Total number of items answered correctly in both phases",
)

requeues = Counter(
    "derdiedas_requeues_total",
    "Total number of missed items put back into the queue",
)

# Storage metrics
storage_errors = Counter(
    "derdiedas_storage_errors_total",
    "Total number of swallowed statistics storage errors",
    ["operation"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
