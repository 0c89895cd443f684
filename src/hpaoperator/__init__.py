"""Synthesizes HorizontalPodAutoscalers from workload annotations."""

__version__ = "0.1.0"
