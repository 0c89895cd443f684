"""Synthesizer for autoscaling/v2 and autoscaling/v2beta2 autoscalers."""

from typing import Any, Dict, Optional

from ..config import AnnotationSchema
from ..models import ExternalMetric, ResourceMetric
from ..parser import MetricParser
from .base import AutoscalerSynthesizer


class V2Synthesizer(AutoscalerSynthesizer):
    """
    Renders metric targets as ``MetricTarget`` objects.

    autoscaling/v2beta2 shares the v2 object shape, so the same strategy
    serves both versions.
    """

    SUPPORTED_VERSIONS = ("autoscaling/v2", "autoscaling/v2beta2")

    def __init__(
        self,
        schema: AnnotationSchema,
        parser: Optional[MetricParser] = None,
        api_version: str = "autoscaling/v2",
    ):
        super().__init__(schema, parser)
        if api_version not in self.SUPPORTED_VERSIONS:
            raise ValueError(f"Unsupported autoscaler API version: {api_version}")
        self.api_version = api_version

    def render_resource_metric(self, metric: ResourceMetric) -> Dict[str, Any]:
        if metric.target_type == "Utilization":
            target = {"type": "Utilization", "averageUtilization": metric.average_utilization}
        else:
            target = {"type": "AverageValue", "averageValue": metric.average_value}
        return {"name": metric.resource, "target": target}

    def render_external_metric(self, metric: ExternalMetric) -> Dict[str, Any]:
        if metric.per_instance:
            target = {"type": "AverageValue", "averageValue": metric.value}
        else:
            target = {"type": "Value", "value": metric.value}
        return {
            "metric": {
                "name": self.schema.external_metric_name,
                "selector": self.external_selector(metric),
            },
            "target": target,
        }
