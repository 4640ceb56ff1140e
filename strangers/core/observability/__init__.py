"""Observability: in-memory relay metrics."""
from strangers.core.observability.metrics import RelayMetrics

__all__ = ["RelayMetrics"]
