"""Base autoscaler synthesizer interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional
import logging

from ..config import AnnotationSchema
from ..errors import InvalidAnnotationError
from ..models import (
    DesiredAutoscaler,
    ExternalMetric,
    MetricSpec,
    OwnerReference,
    Rejection,
    ResourceMetric,
    SynthesisResult,
    WorkloadRef,
)
from ..parser import MetricParser


class AutoscalerSynthesizer(ABC):
    """
    Abstract base class for autoscaler synthesizers.

    A synthesizer turns a workload and its autoscaling annotations into the
    desired autoscaler state, then renders that state as a manifest of one
    autoscaler API version.
    """

    api_version = ""
    kind = "HorizontalPodAutoscaler"

    def __init__(self, schema: AnnotationSchema, parser: Optional[MetricParser] = None):
        """
        Initialize the synthesizer.

        Args:
            schema: Annotation schema shared with the filter and the parser
            parser: Metric parser, built from the schema when omitted
        """
        self.schema = schema
        self.parser = parser or MetricParser(schema)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def group(self) -> str:
        return self.api_version.split("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.split("/")[-1]

    def synthesize(
        self, workload: WorkloadRef, annotations: Mapping[str, str]
    ) -> SynthesisResult:
        """
        Compute the desired autoscaler for a workload.

        Args:
            workload: The workload being autoscaled
            annotations: Filtered autoscaling annotations

        Returns:
            SynthesisResult whose ``desired`` is None when a replica bound is
            invalid or no valid metric is configured
        """
        rejected: List[Rejection] = []

        try:
            min_replicas = self.parser.parse_replica_bound(
                annotations, self.schema.min_replicas_key, workload.name
            )
            max_replicas = self.parser.parse_replica_bound(
                annotations, self.schema.max_replicas_key, workload.name
            )
        except InvalidAnnotationError as e:
            self.logger.error(f"Invalid annotation: {e}")
            rejected.append(Rejection(key=e.key, reason=e.reason))
            return SynthesisResult(rejected=rejected)

        if min_replicas > max_replicas:
            # Left to the autoscaling controller to reject
            self.logger.warning(
                f"{workload.namespace}/{workload.name}: minReplicas {min_replicas} "
                f"is greater than maxReplicas {max_replicas}"
            )

        parsed = self.parser.parse_all_metrics(annotations, workload.name)
        rejected.extend(parsed.rejected)

        self.logger.info(f"Number of metrics for {workload.namespace}/{workload.name}: {len(parsed.metrics)}")
        if not parsed.metrics:
            self.logger.error(f"No metrics configured for {workload.namespace}/{workload.name}")
            return SynthesisResult(rejected=rejected)

        metadata_annotations = {
            self.schema.query_annotation(metric.name): metric.query
            for metric in parsed.metrics
            if isinstance(metric, ExternalMetric)
        }

        desired = DesiredAutoscaler(
            name=workload.name,
            namespace=workload.namespace,
            target_api_version=workload.api_version,
            target_kind=workload.kind,
            min_replicas=min_replicas,
            max_replicas=max_replicas,
            metrics=parsed.metrics,
            owner_reference=OwnerReference(
                api_version=workload.api_version,
                kind=workload.kind,
                name=workload.name,
                uid=workload.uid,
            ),
            annotations=metadata_annotations,
        )
        return SynthesisResult(desired=desired, rejected=rejected)

    def render(self, desired: DesiredAutoscaler) -> Dict[str, Any]:
        """
        Render the desired state as a manifest of this API version.

        Args:
            desired: Desired autoscaler state

        Returns:
            Manifest body accepted by the autoscaling API
        """
        metadata: Dict[str, Any] = {
            "name": desired.name,
            "namespace": desired.namespace,
            "ownerReferences": [desired.owner_reference.to_dict()],
        }
        if desired.annotations:
            metadata["annotations"] = dict(desired.annotations)

        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
            "spec": {
                "scaleTargetRef": {
                    "apiVersion": desired.target_api_version,
                    "kind": desired.target_kind,
                    "name": desired.name,
                },
                "minReplicas": desired.min_replicas,
                "maxReplicas": desired.max_replicas,
                "metrics": [self.render_metric(metric) for metric in desired.metrics],
            },
        }

    def render_metric(self, metric: MetricSpec) -> Dict[str, Any]:
        if isinstance(metric, ResourceMetric):
            return {"type": "Resource", "resource": self.render_resource_metric(metric)}
        return {"type": "External", "external": self.render_external_metric(metric)}

    def external_selector(self, metric: ExternalMetric) -> Dict[str, Any]:
        return {"matchLabels": {self.schema.external_selector_label: metric.name}}

    @abstractmethod
    def render_resource_metric(self, metric: ResourceMetric) -> Dict[str, Any]:
        """Body of the ``resource`` metric source."""
        pass

    @abstractmethod
    def render_external_metric(self, metric: ExternalMetric) -> Dict[str, Any]:
        """Body of the ``external`` metric source."""
        pass

    def build(
        self, workload: WorkloadRef, annotations: Mapping[str, str]
    ) -> Optional[Dict[str, Any]]:
        """Synthesize and render in one step; None when nothing is configured."""
        result = self.synthesize(workload, annotations)
        if result.desired is None:
            return None
        return self.render(result.desired)
