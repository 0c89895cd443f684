"""Translation of autoscaling annotations into typed metric specifications."""

import re
import logging
from decimal import Decimal
from typing import Mapping, Optional, Set

from kubernetes.utils import parse_quantity

from .config import AnnotationSchema
from .errors import InvalidAnnotationError
from .models import ExternalMetric, MetricSpec, ParseResult, Rejection, ResourceMetric

logger = logging.getLogger(__name__)

INT32_MAX = 2**31 - 1

_INTEGER = re.compile(r"[+-]?[0-9]+")

# Kubernetes resource.Quantity grammar; parse_quantity alone is more lenient
_QUANTITY = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)"
    r"(?:[eE][+-]?[0-9]+|Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E)?"
)


def parse_int32(key: str, raw_value: Optional[str]) -> int:
    """
    Parse a base-10 int32 annotation value.

    Raises:
        InvalidAnnotationError: If the value is missing, not an integer or
            does not fit into int32
    """
    if not raw_value:
        raise InvalidAnnotationError(key, "value is missing")
    if not _INTEGER.fullmatch(raw_value):
        raise InvalidAnnotationError(key, f"{raw_value!r} is not an integer")

    value = int(raw_value)
    if not -INT32_MAX - 1 <= value <= INT32_MAX:
        raise InvalidAnnotationError(key, f"{raw_value!r} is out of int32 range")
    return value


def parse_quantity_value(key: str, raw_value: Optional[str]) -> str:
    """
    Validate a quantity string such as ``1024Mi`` or ``500m``.

    Returns:
        The quantity string as written in the annotation

    Raises:
        InvalidAnnotationError: If the string is not a valid quantity
    """
    if not raw_value:
        raise InvalidAnnotationError(key, "value is missing")
    if not _QUANTITY.fullmatch(raw_value):
        raise InvalidAnnotationError(key, f"{raw_value!r} is not a valid quantity")
    try:
        quantity = parse_quantity(raw_value)
    except ValueError as e:
        raise InvalidAnnotationError(key, f"{raw_value!r} is not a valid quantity: {e}")

    if not isinstance(quantity, Decimal) or not quantity.is_finite():
        raise InvalidAnnotationError(key, f"{raw_value!r} is not a valid quantity")
    return raw_value


class MetricParser:
    """
    Turns filtered annotations into metric specifications.

    Parsing is best effort: an invalid entry is dropped, logged and reported
    as a ``Rejection`` while the remaining entries are still parsed.
    """

    def __init__(self, schema: AnnotationSchema):
        self.schema = schema
        self.logger = logging.getLogger(self.__class__.__name__)

    def parse_replica_bound(
        self, annotations: Mapping[str, str], key: str, workload_name: str = ""
    ) -> int:
        """
        Read a replica bound annotation.

        Args:
            annotations: Filtered autoscaling annotations
            key: Full annotation key of the bound
            workload_name: Used in error messages only

        Returns:
            Positive replica count

        Raises:
            InvalidAnnotationError: If the bound is missing, not numeric or
                not positive
        """
        raw_value = annotations.get(key)
        if not raw_value:
            raise InvalidAnnotationError(
                key, f"annotation is missing for workload {workload_name}"
            )

        value = parse_int32(key, raw_value)
        if value <= 0:
            raise InvalidAnnotationError(
                key, f"value for workload {workload_name} should be a positive number"
            )
        return value

    def _build_resource_metric(
        self, resource: str, target_key: str, target_format: str, raw_value: str
    ) -> ResourceMetric:
        if not raw_value:
            raise InvalidAnnotationError(target_key, "value is missing")
        if not target_format:
            raise InvalidAnnotationError(target_key, "value format is missing")

        if target_format == self.schema.target_average_utilization:
            utilization = parse_int32(target_key, raw_value)
            if utilization <= 0 or utilization > 100:
                raise InvalidAnnotationError(
                    target_key, f"{raw_value} should be a percentage value between [1,100]"
                )
            return ResourceMetric(
                resource=resource,
                target_type="Utilization",
                average_utilization=utilization,
            )

        if target_format == self.schema.target_average_value:
            return ResourceMetric(
                resource=resource,
                target_type="AverageValue",
                average_value=parse_quantity_value(target_key, raw_value),
            )

        raise InvalidAnnotationError(
            target_key, f"unknown resource metric value format {target_format!r}"
        )

    def parse_resource_metric(
        self,
        resource: str,
        target_key: str,
        target_format: str,
        raw_value: str,
        workload_name: str = "",
    ) -> Optional[ResourceMetric]:
        """
        Build a CPU or memory metric.

        Args:
            resource: ``cpu`` or ``memory``
            target_key: Annotation key the value came from
            target_format: Field after the domain separator, selects
                utilization or average value
            raw_value: Annotation value
            workload_name: Used in log messages only

        Returns:
            ResourceMetric, or None if the entry is invalid
        """
        try:
            return self._build_resource_metric(resource, target_key, target_format, raw_value)
        except InvalidAnnotationError as e:
            self.logger.error(
                f"Invalid resource metric annotation for workload {workload_name}: {e}"
            )
            return None

    def _build_external_metric(
        self, metric_name: str, annotations: Mapping[str, str]
    ) -> ExternalMetric:
        schema = self.schema
        query_key = schema.external_key(metric_name, schema.query_field)
        query = annotations.get(query_key)
        if query is None:
            raise InvalidAnnotationError(query_key, f"query is missing for custom metric {metric_name}")

        value_key = schema.external_key(metric_name, schema.target_value_field)
        average_key = schema.external_key(metric_name, schema.target_average_value_field)

        if value_key in annotations:
            return ExternalMetric(
                name=metric_name,
                query=query,
                target_type="Value",
                value=parse_quantity_value(value_key, annotations[value_key]),
            )
        if average_key in annotations:
            return ExternalMetric(
                name=metric_name,
                query=query,
                target_type="AverageValue",
                value=parse_quantity_value(average_key, annotations[average_key]),
            )

        raise InvalidAnnotationError(
            value_key,
            f"either {schema.target_value_field} or {schema.target_average_value_field} "
            f"is required for custom metric {metric_name}",
        )

    def parse_external_metric(
        self, metric_name: str, annotations: Mapping[str, str], workload_name: str = ""
    ) -> Optional[ExternalMetric]:
        """
        Build an external metric from its ``query`` and target sub-keys.

        ``targetValue`` wins when both targets are present.
        """
        self.logger.info(f"Setting up custom metric {metric_name} for workload {workload_name}")
        try:
            return self._build_external_metric(metric_name, annotations)
        except InvalidAnnotationError as e:
            self.logger.error(
                f"Invalid custom metric annotation for workload {workload_name}: {e}"
            )
            return None

    def parse_all_metrics(
        self, annotations: Mapping[str, str], workload_name: str = ""
    ) -> ParseResult:
        """
        Parse every metric annotation, in lexicographic key order.

        A key that does not decompose into ``<subdomain>/<field>`` with at
        least two subdomain labels ends the parse; the metrics gathered
        before it are returned.

        Args:
            annotations: Filtered autoscaling annotations
            workload_name: Used in log messages only

        Returns:
            ParseResult with the metrics and the rejected entries
        """
        schema = self.schema
        result = ParseResult()
        seen_external: Set[str] = set()

        for key in sorted(annotations):
            raw_value = annotations[key]

            parts = key.split(schema.domain_separator)
            subdomains = parts[0].split(schema.subdomain_separator) if len(parts) == 2 else []
            if len(subdomains) < 2:
                self.logger.error(
                    f"Metric annotation for workload {workload_name} is invalid: {key}"
                )
                result.rejected.append(Rejection(key=key, reason="malformed annotation key"))
                return result

            prefix, field = subdomains[0], parts[1]
            metric: Optional[MetricSpec] = None

            try:
                if prefix == schema.cpu_prefix:
                    metric = self._build_resource_metric("cpu", key, field, raw_value)
                elif prefix == schema.memory_prefix:
                    metric = self._build_resource_metric("memory", key, field, raw_value)
                elif prefix == schema.external_prefix:
                    metric_name = subdomains[1]
                    if metric_name in seen_external:
                        continue
                    seen_external.add(metric_name)
                    self.logger.info(f"Setting up custom metric {metric_name}")
                    metric = self._build_external_metric(metric_name, annotations)
            except InvalidAnnotationError as e:
                self.logger.error(f"Invalid metric annotation for workload {workload_name}: {e}")
                result.rejected.append(Rejection(key=e.key, reason=e.reason))
                continue

            if metric is not None:
                result.metrics.append(metric)

        return result

