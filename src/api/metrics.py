from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "assist_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "assist_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

EVENTS_CREATED_TOTAL = get_or_create_metric(
    "assist_events_created_total", "Total events committed to the calendar", Counter
)

TODOS_CREATED_TOTAL = get_or_create_metric(
    "assist_todos_created_total", "Total todos parsed and stored", Counter
)

DECODE_STAGE_TOTAL = get_or_create_metric(
    "assist_decode_stage_total",
    "Extraction responses by decode stage",
    Counter,
    labelnames=["stage"],
)

CLASSIFICATION_SOURCE_TOTAL = get_or_create_metric(
    "assist_classification_source_total",
    "Category predictions by source",
    Counter,
    labelnames=["source"],
)
