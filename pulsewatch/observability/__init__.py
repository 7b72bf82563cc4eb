"""Logging and Prometheus instrumentation for PulseWatch."""
