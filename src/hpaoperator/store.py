"""Object store access for autoscaler objects."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import json
import logging

from kubernetes import client
from kubernetes.client.rest import ApiException

from .errors import AlreadyExistsError

logger = logging.getLogger(__name__)

PLURAL = "horizontalpodautoscalers"


class AutoscalerStore(ABC):
    """Abstract base class for the store holding autoscaler objects."""

    @abstractmethod
    def get(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """
        Fetch an autoscaler.

        Returns:
            The object, or None if it does not exist
        """
        pass

    @abstractmethod
    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an autoscaler.

        Raises:
            AlreadyExistsError: If an object with the same name exists
        """
        pass

    @abstractmethod
    def update(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an existing autoscaler."""
        pass

    @abstractmethod
    def delete(self, namespace: str, name: str) -> None:
        """Delete an autoscaler."""
        pass


def is_already_exists(error: ApiException) -> bool:
    """Whether an API error is a 409 with reason AlreadyExists."""
    if error.status != 409:
        return False
    try:
        body = json.loads(error.body or "{}")
    except ValueError:
        return True
    if not isinstance(body, dict):
        return True
    return body.get("reason", "AlreadyExists") == "AlreadyExists"


class KubernetesAutoscalerStore(AutoscalerStore):
    """
    Reads and writes HorizontalPodAutoscalers through the Kubernetes API.

    The generic custom objects API is used so that every autoscaling API
    version is handled as plain dicts.
    """

    def __init__(self, api_version: str, custom_api: Optional[client.CustomObjectsApi] = None):
        self.group, self.version = api_version.split("/")
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            return self.custom_api.get_namespaced_custom_object(
                group=self.group,
                version=self.version,
                namespace=namespace,
                plural=PLURAL,
                name=name,
            )
        except ApiException as e:
            if e.status == 404:
                self.logger.info(f"HorizontalPodAutoscaler {namespace}/{name} doesn't exist")
                return None
            raise

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        metadata = manifest["metadata"]
        try:
            return self.custom_api.create_namespaced_custom_object(
                group=self.group,
                version=self.version,
                namespace=metadata["namespace"],
                plural=PLURAL,
                body=manifest,
            )
        except ApiException as e:
            if is_already_exists(e):
                raise AlreadyExistsError(f"{metadata['namespace']}/{metadata['name']}") from e
            raise

    def update(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        metadata = manifest["metadata"]
        try:
            return self.custom_api.replace_namespaced_custom_object(
                group=self.group,
                version=self.version,
                namespace=metadata["namespace"],
                plural=PLURAL,
                name=metadata["name"],
                body=manifest,
            )
        except ApiException as e:
            if is_already_exists(e):
                raise AlreadyExistsError(f"{metadata['namespace']}/{metadata['name']}") from e
            raise

    def delete(self, namespace: str, name: str) -> None:
        self.custom_api.delete_namespaced_custom_object(
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=PLURAL,
            name=name,
        )
