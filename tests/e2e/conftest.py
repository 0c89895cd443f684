"""Pytest configuration for E2E tests."""

import pytest
import subprocess
from kubernetes import client, config


@pytest.fixture(scope="session")
def k8s_cluster():
    """
    Create a kind cluster for testing.

    This fixture creates a kind cluster before tests and tears it down after.
    """
    cluster_name = "hpa-operator-test"

    # Create kind cluster
    print(f"\nCreating kind cluster: {cluster_name}")
    subprocess.run(
        [
            "kind",
            "create",
            "cluster",
            "--name",
            cluster_name,
            "--wait",
            "60s",
        ],
        check=True,
    )

    # Load k8s config
    config.load_kube_config()

    yield cluster_name

    # Cleanup: Delete kind cluster
    print(f"\nDeleting kind cluster: {cluster_name}")
    subprocess.run(
        ["kind", "delete", "cluster", "--name", cluster_name],
        check=False,  # Don't fail if cluster is already gone
    )


@pytest.fixture(scope="session")
def k8s_client(k8s_cluster):
    """Get Kubernetes client."""
    return client.CoreV1Api()


@pytest.fixture(scope="session")
def apps_client(k8s_cluster):
    """Get Kubernetes apps client."""
    return client.AppsV1Api()


@pytest.fixture(scope="session")
def autoscaling_client(k8s_cluster):
    """Get Kubernetes autoscaling/v2 client."""
    return client.AutoscalingV2Api()


@pytest.fixture
def namespace(k8s_client):
    """Create a test namespace."""
    namespace_name = "test-hpa-operator"

    # Create namespace
    namespace_manifest = client.V1Namespace(
        metadata=client.V1ObjectMeta(name=namespace_name)
    )

    try:
        k8s_client.create_namespace(namespace_manifest)
    except client.ApiException as e:
        if e.status != 409:  # Ignore if already exists
            raise

    yield namespace_name

    # Cleanup: Delete namespace
    try:
        k8s_client.delete_namespace(namespace_name)
    except client.ApiException:
        pass
