"""Synthesizer for autoscaling/v2beta1 autoscalers."""

from typing import Any, Dict

from ..models import ExternalMetric, ResourceMetric
from .base import AutoscalerSynthesizer


class V2Beta1Synthesizer(AutoscalerSynthesizer):
    """Renders targets as the flat ``targetAverage*`` / ``targetValue`` fields."""

    api_version = "autoscaling/v2beta1"

    def render_resource_metric(self, metric: ResourceMetric) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": metric.resource}
        if metric.target_type == "Utilization":
            body["targetAverageUtilization"] = metric.average_utilization
        else:
            body["targetAverageValue"] = metric.average_value
        return body

    def render_external_metric(self, metric: ExternalMetric) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "metricName": self.schema.external_metric_name,
            "metricSelector": self.external_selector(metric),
        }
        if metric.per_instance:
            body["targetAverageValue"] = metric.value
        else:
            body["targetValue"] = metric.value
        return body
