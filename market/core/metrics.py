"""
Prometheus counters for remote traffic driven by the client (exposed at /metrics).
"""

from prometheus_client import Counter

MUTATIONS = Counter(
    "market_mutations_total",
    "Mutating remote operations by outcome",
    ["operation", "outcome"],
)

REFRESHES = Counter(
    "market_refreshes_total",
    "View state slice refreshes by outcome",
    ["slice", "outcome"],
)
