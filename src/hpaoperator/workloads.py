"""Adapters from concrete workload objects to WorkloadRef."""

from typing import Any, Callable, Dict, Mapping

from .models import WorkloadRef


def _annotations(metadata: Mapping[str, Any]) -> Dict[str, str]:
    return dict(metadata.get("annotations") or {})


def _workload(body: Mapping[str, Any], kind: str) -> WorkloadRef:
    metadata = body.get("metadata") or {}
    template_metadata = ((body.get("spec") or {}).get("template") or {}).get("metadata") or {}

    return WorkloadRef(
        name=metadata["name"],
        namespace=metadata.get("namespace") or "default",
        kind=body.get("kind") or kind,
        api_version=body.get("apiVersion") or "apps/v1",
        uid=metadata.get("uid") or "",
        annotations=_annotations(metadata),
        pod_annotations=_annotations(template_metadata),
    )


def deployment_workload(body: Mapping[str, Any]) -> WorkloadRef:
    return _workload(body, "Deployment")


def statefulset_workload(body: Mapping[str, Any]) -> WorkloadRef:
    return _workload(body, "StatefulSet")


ADAPTERS: Dict[str, Callable[[Mapping[str, Any]], WorkloadRef]] = {
    "Deployment": deployment_workload,
    "StatefulSet": statefulset_workload,
}


def workload_from_body(body: Mapping[str, Any]) -> WorkloadRef:
    """
    Build a WorkloadRef from a Deployment or StatefulSet body.

    Args:
        body: Object body as delivered by kopf or read from a manifest

    Returns:
        WorkloadRef for the object

    Raises:
        ValueError: If the kind is not a supported workload
    """
    kind = body.get("kind", "")
    adapter = ADAPTERS.get(kind)
    if adapter is None:
        raise ValueError(f"Unsupported workload kind: {kind!r}")
    return adapter(body)
