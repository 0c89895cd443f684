"""Configuration management for the HPA annotation operator."""

import os
import logging
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict
from pythonjsonlogger import jsonlogger

DEFAULT_ANNOTATION_DOMAIN = "hpa.autoscaling.banzaicloud.io"


def setup_logging():
    """Configure structured logging for the operator."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger()
    logger.setLevel(log_level)

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


class AnnotationSchema(BaseModel):
    """
    Names and separators of the autoscaling annotation namespace.

    A key belongs to the namespace when it looks like
    ``<optional-subdomain>.<domain>/<field>``. Every literal the parser and
    the synthesizers rely on lives here, so a different annotation convention
    is a different schema value rather than a code change.
    """

    model_config = ConfigDict(frozen=True)

    domain: str = DEFAULT_ANNOTATION_DOMAIN
    domain_separator: str = "/"
    subdomain_separator: str = "."

    min_replicas_field: str = "minReplicas"
    max_replicas_field: str = "maxReplicas"

    cpu_prefix: str = "cpu"
    memory_prefix: str = "memory"
    external_prefix: str = "prometheus"

    target_average_utilization: str = "targetAverageUtilization"
    target_average_value: str = "targetAverageValue"

    query_field: str = "query"
    target_value_field: str = "targetValue"
    target_average_value_field: str = "targetAverageValue"

    external_metric_name: str = "prometheus-query"
    external_selector_label: str = "query-name"
    query_annotation_template: str = (
        "metric-config.external.prometheus-query.prometheus/{name}"
    )

    # Overrides the pattern derived from the domain when set
    key_pattern: Optional[str] = None

    def bound_key(self, field: str) -> str:
        """Full annotation key of a replica bound field."""
        return f"{self.domain}{self.domain_separator}{field}"

    @property
    def min_replicas_key(self) -> str:
        return self.bound_key(self.min_replicas_field)

    @property
    def max_replicas_key(self) -> str:
        return self.bound_key(self.max_replicas_field)

    def external_key(self, metric_name: str, field: str) -> str:
        """Full annotation key of an external metric sub-key."""
        return (
            f"{self.external_prefix}{self.subdomain_separator}{metric_name}"
            f"{self.subdomain_separator}{self.domain}{self.domain_separator}{field}"
        )

    def query_annotation(self, metric_name: str) -> str:
        return self.query_annotation_template.format(name=metric_name)


def load_annotation_schema(path: Optional[str] = None) -> AnnotationSchema:
    """
    Load the annotation schema.

    Args:
        path: YAML file holding a schema document. Defaults to
            ``Config.ANNOTATION_SCHEMA_FILE``; when neither is set the schema
            is built from ``Config.ANNOTATION_DOMAIN``.

    Returns:
        AnnotationSchema instance

    Raises:
        pydantic.ValidationError: If the document does not describe a schema
        OSError: If the file cannot be read
    """
    path = path or Config.ANNOTATION_SCHEMA_FILE
    if not path:
        return AnnotationSchema(domain=Config.ANNOTATION_DOMAIN)

    with open(path, "r", encoding="utf-8") as fh:
        document = yaml.safe_load(fh) or {}

    logging.getLogger(__name__).info(f"Loaded annotation schema from {path}")
    return AnnotationSchema.model_validate(document)


class Config:
    """Operator configuration."""

    # Kubernetes configuration
    NAMESPACE = os.getenv("WATCH_NAMESPACE", os.getenv("OPERATOR_NAMESPACE", ""))  # Empty means all namespaces

    # Autoscaler object version to synthesize
    AUTOSCALER_API_VERSION = os.getenv("AUTOSCALER_API_VERSION", "autoscaling/v2")

    # Annotation namespace
    ANNOTATION_DOMAIN = os.getenv("ANNOTATION_DOMAIN", DEFAULT_ANNOTATION_DOMAIN)
    ANNOTATION_SCHEMA_FILE = os.getenv("ANNOTATION_SCHEMA_FILE", "")
