"""HPA annotation operator using kopf."""

import kopf
import logging
from typing import Any, Mapping, Optional

from kubernetes import config as k8s_config

from .annotations import AnnotationFilter
from .config import AnnotationSchema, Config, load_annotation_schema, setup_logging
from .reconciler import Reconciler, ReconcileDecision
from .store import KubernetesAutoscalerStore
from .synthesizers import AutoscalerSynthesizer, V2Beta1Synthesizer, V2Synthesizer
from .workloads import deployment_workload, statefulset_workload

# Set up logging
setup_logging()
logger = logging.getLogger(__name__)

# Built on first use so that importing the module needs no cluster
reconciler: Optional[Reconciler] = None

# Watch event type of a removed workload; its autoscaler is garbage collected
DELETED = "DELETED"


def create_synthesizer(api_version: str, schema: AnnotationSchema) -> AutoscalerSynthesizer:
    """
    Create the synthesizer for an autoscaler API version.

    Args:
        api_version: ``autoscaling/v2``, ``autoscaling/v2beta2`` or
            ``autoscaling/v2beta1``
        schema: Annotation schema

    Returns:
        AutoscalerSynthesizer instance

    Raises:
        ValueError: If the API version is not supported
    """
    if api_version in V2Synthesizer.SUPPORTED_VERSIONS:
        return V2Synthesizer(schema, api_version=api_version)
    elif api_version == V2Beta1Synthesizer.api_version:
        return V2Beta1Synthesizer(schema)
    raise ValueError(f"Unsupported autoscaler API version: {api_version}")


def create_reconciler(
    api_version: Optional[str] = None, schema: Optional[AnnotationSchema] = None
) -> Reconciler:
    """Wire a reconciler against the Kubernetes API."""
    api_version = api_version or Config.AUTOSCALER_API_VERSION
    schema = schema or load_annotation_schema()

    return Reconciler(
        store=KubernetesAutoscalerStore(api_version),
        annotation_filter=AnnotationFilter(schema),
        synthesizer=create_synthesizer(api_version, schema),
    )


def get_reconciler() -> Reconciler:
    global reconciler
    if reconciler is None:
        reconciler = create_reconciler()
        logger.info(
            f"Synthesizing {Config.AUTOSCALER_API_VERSION} autoscalers for "
            f"annotation domain {reconciler.annotation_filter.schema.domain}"
        )
    return reconciler


def load_kubernetes_config():
    """Load in-cluster config, falling back to kubeconfig."""
    try:
        k8s_config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except k8s_config.ConfigException:
        try:
            k8s_config.load_kube_config()
            logger.info("Loaded kubeconfig")
        except k8s_config.ConfigException:
            logger.error("Failed to load Kubernetes configuration")
            raise


@kopf.on.startup()
def on_startup(settings: kopf.OperatorSettings, **kwargs):
    """Load cluster credentials and build the reconciler."""
    load_kubernetes_config()
    settings.posting.level = logging.WARNING
    get_reconciler()


def reconcile_workload(workload) -> ReconcileDecision:
    decision = get_reconciler().reconcile(workload)
    for rejection in decision.rejected:
        logger.warning(
            f"Dropped annotation {rejection.key} on {workload.namespace}/{workload.name}: "
            f"{rejection.reason}"
        )
    logger.info(
        f"{workload.kind} {workload.namespace}/{workload.name}: "
        f"{decision.action} ({decision.reason})"
    )
    return decision


@kopf.on.event("apps", "v1", "deployments")
def on_deployment(body: Mapping[str, Any], type: Optional[str] = None, **kwargs):
    """Handle Deployment listing, creation and change."""
    if type == DELETED:
        return
    reconcile_workload(deployment_workload(body))


@kopf.on.event("apps", "v1", "statefulsets")
def on_statefulset(body: Mapping[str, Any], type: Optional[str] = None, **kwargs):
    """Handle StatefulSet listing, creation and change."""
    if type == DELETED:
        return
    reconcile_workload(statefulset_workload(body))


def main():
    """Main entry point for the operator."""
    logger.info("Starting HPA annotation operator")

    load_kubernetes_config()

    if Config.NAMESPACE:
        logger.info(f"Watching namespace {Config.NAMESPACE}")
        kopf.run(namespaces=[Config.NAMESPACE])
    else:
        logger.info("Watching all namespaces")
        kopf.run(clusterwide=True)


if __name__ == "__main__":
    main()
