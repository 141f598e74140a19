from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path", "status"],
)
REQUEST_ERRORS = Counter(
    "http_request_errors_total",
    "Total HTTP 5xx responses",
    ["method", "path", "status"],
)

SIGNATURES_SUBMITTED = Counter(
    "signatures_submitted_total",
    "Signature submissions by outcome",
    ["outcome"],
)
CONTRACTS_COMPLETED = Counter(
    "contracts_completed_total",
    "Contracts that reached the completed state",
)
SIGNING_RETRIES = Counter(
    "signing_transaction_retries_total",
    "Signing transactions retried after a lost race or lock failure",
)
INVITATIONS = Counter(
    "contract_invitations_total",
    "Signing invitations by delivery status",
    ["status"],
)


def observe_request(method: str, path: str, status: int, duration: float) -> None:
    labels = {"method": method, "path": path, "status": str(status)}
    REQUEST_COUNT.labels(**labels).inc()
    REQUEST_LATENCY.labels(**labels).observe(duration)
    if status >= 500:
        REQUEST_ERRORS.labels(**labels).inc()
