from .breaker import BudgetExhausted, CircuitBreaker, CircuitOpen, FetchCancelled
from .common import FetchError, RemoteRejected, ResponseShapeError, dns_preflight, fetch_json, fetch_url
from .fred import DayFetcher, build_query_url, parse_observation
from .types import FetchResult

__all__ = [
    "BudgetExhausted",
    "CircuitBreaker",
    "CircuitOpen",
    "DayFetcher",
    "FetchCancelled",
    "FetchError",
    "FetchResult",
    "RemoteRejected",
    "ResponseShapeError",
    "build_query_url",
    "dns_preflight",
    "fetch_json",
    "fetch_url",
    "parse_observation",
]
