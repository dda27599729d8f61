import logging
from prometheus_client import Counter, Histogram, start_http_server

MIDDLEWARE_STAGE_SECONDS = Histogram(
    "userop_builder_middleware_stage_seconds",
    "Time spent in a UserOperation middleware stage",
    ["stage"],
)
MIDDLEWARE_STAGE_FAILURES = Counter(
    "userop_builder_middleware_stage_failures",
    "UserOperation middleware stage failures",
    ["stage"],
)


def run_metrics_server(host="localhost", port=8000):
    """
    run prometheus metrics server, for applications embedding the builder
    """
    logging.info(f"Starting Metrics Http Server at: {host}:{port}")
    start_http_server(port, addr=host)
