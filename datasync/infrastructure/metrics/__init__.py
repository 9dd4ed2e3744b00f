from .jsonl import DEFAULT_LOGGER_NAME, MetricsClient

__all__ = ["DEFAULT_LOGGER_NAME", "MetricsClient"]
