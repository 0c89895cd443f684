"""Convergence of autoscaler objects with workload annotations."""

from typing import Any, Dict, List, Optional, Tuple
import logging

from .annotations import AnnotationFilter
from .errors import AlreadyExistsError
from .models import Rejection, WorkloadRef
from .store import AutoscalerStore
from .synthesizers import AutoscalerSynthesizer

logger = logging.getLogger(__name__)

NOOP = "noop"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"


def select_annotations(
    annotation_filter: AnnotationFilter, workload: WorkloadRef
) -> Tuple[Dict[str, str], str]:
    """
    Pick the annotation source of a workload.

    The workload's own annotations win when any of them is recognized;
    otherwise the pod template's annotations are used. Sources are never
    merged.

    Returns:
        Tuple of the filtered annotations and the source they came from
        (``workload``, ``pod-template`` or ``none``)
    """
    annotations = annotation_filter.filter(workload.annotations)
    if annotations:
        logger.info(f"Autoscale annotations found on {workload.kind} {workload.name}")
        return annotations, "workload"

    annotations = annotation_filter.filter(workload.pod_annotations)
    if annotations:
        logger.info(f"Autoscale annotations found on pod template of {workload.name}")
        return annotations, "pod-template"

    logger.info(f"Autoscale annotations not found on {workload.name}")
    return {}, "none"


class ReconcileDecision:
    """Represents the action taken for one workload."""

    def __init__(
        self,
        action: str,
        reason: str,
        manifest: Optional[Dict[str, Any]] = None,
        rejected: Optional[List[Rejection]] = None,
    ):
        self.action = action
        self.reason = reason
        self.manifest = manifest
        self.rejected = rejected or []


class Reconciler:
    """
    Keeps the autoscaler of a workload in line with its annotations.

    The reconciler holds no state between calls: every decision is made from
    the workload passed in and what the store returns. Only autoscalers whose
    owner references point at the workload are ever updated or deleted.
    Store errors other than "already exists" propagate to the caller, which
    is expected to retry.
    """

    def __init__(
        self,
        store: AutoscalerStore,
        annotation_filter: AnnotationFilter,
        synthesizer: AutoscalerSynthesizer,
    ):
        self.store = store
        self.annotation_filter = annotation_filter
        self.synthesizer = synthesizer
        self.logger = logging.getLogger(self.__class__.__name__)

    def select_annotations(self, workload: WorkloadRef) -> Tuple[Dict[str, str], str]:
        return select_annotations(self.annotation_filter, workload)

    @staticmethod
    def is_owned(autoscaler: Dict[str, Any], workload: WorkloadRef) -> bool:
        """Whether an autoscaler's owner references name the workload."""
        owner_references = (autoscaler.get("metadata") or {}).get("ownerReferences") or []
        return any(
            ref.get("name") == workload.name and ref.get("kind") == workload.kind
            for ref in owner_references
        )

    def reconcile(self, workload: WorkloadRef) -> ReconcileDecision:
        """
        Create, update or delete the workload's autoscaler as needed.

        Args:
            workload: The workload that changed

        Returns:
            ReconcileDecision describing the action taken

        Raises:
            kubernetes.client.ApiException: If the store fails
        """
        key = f"{workload.namespace}/{workload.name}"
        self.logger.info(f"Reconciling {workload.kind} {key}")

        annotations, source = self.select_annotations(workload)
        current = self.store.get(workload.namespace, workload.name)

        if current is not None and not self.is_owned(current, workload):
            self.logger.info(f"HorizontalPodAutoscaler {key} is not created by us")
            return ReconcileDecision(NOOP, "autoscaler is not owned by the workload")

        if not annotations:
            if current is None:
                return ReconcileDecision(NOOP, "not configured")
            self.logger.info(f"HorizontalPodAutoscaler {key} found, will be deleted")
            self.store.delete(workload.namespace, workload.name)
            return ReconcileDecision(DELETE, "autoscale annotations removed")

        result = self.synthesizer.synthesize(workload, annotations)
        if result.desired is None:
            self.logger.warning(f"No valid autoscaler configuration for {key} (from {source})")
            return ReconcileDecision(NOOP, "invalid configuration", rejected=result.rejected)

        manifest = self.synthesizer.render(result.desired)

        if current is None:
            self.logger.info(f"HorizontalPodAutoscaler {key} doesn't exist, will be created")
            action, store_call = CREATE, self.store.create
        else:
            self.logger.info(f"HorizontalPodAutoscaler {key} found, will be updated")
            action, store_call = UPDATE, self.store.update

        try:
            store_call(manifest)
        except AlreadyExistsError:
            self.logger.info(f"HorizontalPodAutoscaler {key} already exists")

        return ReconcileDecision(
            action,
            f"configured from {source} annotations",
            manifest=manifest,
            rejected=result.rejected,
        )
