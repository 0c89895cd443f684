"""Typed values passed between the filter, parser, synthesizers and reconciler."""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class WorkloadRef(BaseModel):
    """The scalable object an autoscaler is synthesized for."""

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    kind: str
    api_version: str
    uid: str = ""
    annotations: Dict[str, str] = Field(default_factory=dict)
    pod_annotations: Dict[str, str] = Field(default_factory=dict)


class ResourceMetric(BaseModel):
    """CPU or memory target, as utilization percentage or average quantity."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["resource"] = "resource"
    resource: Literal["cpu", "memory"]
    target_type: Literal["Utilization", "AverageValue"]
    average_utilization: Optional[int] = None
    average_value: Optional[str] = None


class ExternalMetric(BaseModel):
    """Query-backed metric served by an external metrics adapter."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["external"] = "external"
    name: str
    query: str
    target_type: Literal["Value", "AverageValue"]
    value: str

    @property
    def per_instance(self) -> bool:
        return self.target_type == "AverageValue"


MetricSpec = Union[ResourceMetric, ExternalMetric]


class Rejection(BaseModel):
    """An annotation entry that was dropped, and why."""

    model_config = ConfigDict(frozen=True)

    key: str
    reason: str


class ParseResult(BaseModel):
    metrics: List[MetricSpec] = Field(default_factory=list)
    rejected: List[Rejection] = Field(default_factory=list)


class OwnerReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }


class DesiredAutoscaler(BaseModel):
    """
    Version-neutral desired state of one autoscaler object.

    Computed on every reconciliation and rendered into a manifest by the
    synthesizer of the configured API version.
    """

    name: str
    namespace: str
    target_api_version: str
    target_kind: str
    min_replicas: int
    max_replicas: int
    metrics: List[MetricSpec]
    owner_reference: OwnerReference
    annotations: Dict[str, str] = Field(default_factory=dict)


class SynthesisResult(BaseModel):
    desired: Optional[DesiredAutoscaler] = None
    rejected: List[Rejection] = Field(default_factory=list)
