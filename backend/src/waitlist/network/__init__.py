"""Public network config and homepage metrics."""

from waitlist.network.config import NetworkConfig, build_network_config
from waitlist.network.metrics import Metrics, MetricsService, metrics_service

__all__ = ["Metrics", "MetricsService", "NetworkConfig", "build_network_config", "metrics_service"]
