"""HTTP API for inspecting Kafka clusters, consumer groups, their lag and the service configuration."""

__version__ = "0.1.0"