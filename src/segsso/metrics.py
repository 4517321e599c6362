from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()

REMOTE_OPERATIONS = Counter(
    "segsso_remote_operations_total",
    "Calls made to the remote SSO and profile services",
    ["operation", "outcome"],
    registry=registry,
)

RECONCILE_DECISIONS = Counter(
    "segsso_reconcile_decisions_total",
    "Per-request auto login/logout decisions",
    ["action"],
    registry=registry,
)
