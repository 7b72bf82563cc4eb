"""PulseWatch: metrics collection, threshold alerting and notification fan-out."""

__version__ = "0.1.0"
