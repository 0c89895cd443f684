"""Unit tests for the metric parser."""

import logging

import pytest

from hpaoperator.errors import InvalidAnnotationError
from hpaoperator.models import ExternalMetric, ResourceMetric

from annotation_keys import (
    CPU_UTILIZATION,
    CPU_VALUE,
    MAX_REPLICAS,
    MEMORY_VALUE,
    MIN_REPLICAS,
    prometheus_key,
)


class TestParseReplicaBound:
    """Tests for replica bound parsing."""

    def test_valid_bound(self, parser):
        """Test that a positive integer is accepted."""
        assert parser.parse_replica_bound({MIN_REPLICAS: "3"}, MIN_REPLICAS) == 3

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.5", "", "99999999999"])
    def test_invalid_bound(self, parser, value):
        """Test that non-positive, non-numeric and oversized values fail."""
        with pytest.raises(InvalidAnnotationError) as exc_info:
            parser.parse_replica_bound({MIN_REPLICAS: value}, MIN_REPLICAS, "web")
        assert exc_info.value.key == MIN_REPLICAS

    def test_missing_bound(self, parser):
        """Test that a missing key fails."""
        with pytest.raises(InvalidAnnotationError) as exc_info:
            parser.parse_replica_bound({MIN_REPLICAS: "1"}, MAX_REPLICAS, "web")
        assert "missing" in exc_info.value.reason


class TestParseResourceMetric:
    """Tests for CPU and memory metrics."""

    def test_utilization(self, parser):
        """Test a utilization target."""
        metric = parser.parse_resource_metric(
            "cpu", CPU_UTILIZATION, "targetAverageUtilization", "80"
        )

        assert metric == ResourceMetric(
            resource="cpu", target_type="Utilization", average_utilization=80
        )

    @pytest.mark.parametrize("value,accepted", [("1", True), ("100", True), ("0", False), ("101", False)])
    def test_utilization_bounds(self, parser, value, accepted):
        """Test that utilization must lie in [1,100]."""
        metric = parser.parse_resource_metric(
            "cpu", CPU_UTILIZATION, "targetAverageUtilization", value
        )
        assert (metric is not None) is accepted

    def test_utilization_with_percent_sign_is_dropped(self, parser):
        """Test that a percent sign is not accepted."""
        metric = parser.parse_resource_metric(
            "cpu", CPU_UTILIZATION, "targetAverageUtilization", "80%"
        )
        assert metric is None

    def test_average_value(self, parser):
        """Test an absolute quantity target."""
        metric = parser.parse_resource_metric(
            "memory", MEMORY_VALUE, "targetAverageValue", "1024Mi"
        )

        assert metric.resource == "memory"
        assert metric.target_type == "AverageValue"
        assert metric.average_value == "1024Mi"

    def test_invalid_quantity(self, parser):
        """Test that an unparseable quantity is dropped."""
        metric = parser.parse_resource_metric(
            "memory", MEMORY_VALUE, "targetAverageValue", "1024xMi"
        )
        assert metric is None

    @pytest.mark.parametrize("value", ["500K", "1_000", " 10", "10 ", "1mi", "1ui", "1ni", "Mi", "1.5.0"])
    def test_quantity_outside_kubernetes_grammar(self, parser, value):
        """Test that quantities the API server would refuse are dropped."""
        metric = parser.parse_resource_metric("memory", MEMORY_VALUE, "targetAverageValue", value)
        assert metric is None

    @pytest.mark.parametrize("value", ["500k", "1Gi", "250m", "1.5", ".5", "1e3", "2E", "+10"])
    def test_quantity_forms_accepted(self, parser, value):
        """Test the decimal, binary and exponent quantity forms."""
        metric = parser.parse_resource_metric("memory", MEMORY_VALUE, "targetAverageValue", value)
        assert metric.average_value == value

    def test_invalid_value_logged_as_error(self, parser, caplog):
        """Test that a dropped value is logged at error level."""
        with caplog.at_level(logging.INFO):
            parser.parse_resource_metric("cpu", CPU_UTILIZATION, "targetAverageUtilization", "150")

        assert [r.levelno for r in caplog.records] == [logging.ERROR]

    def test_unknown_format(self, parser):
        """Test that an unknown value format is dropped."""
        metric = parser.parse_resource_metric("cpu", CPU_VALUE, "targetSomething", "1")
        assert metric is None

    def test_missing_value(self, parser):
        """Test that an empty value is dropped."""
        metric = parser.parse_resource_metric("cpu", CPU_VALUE, "targetAverageValue", "")
        assert metric is None


class TestParseExternalMetric:
    """Tests for query-backed metrics."""

    def test_average_value_is_per_instance(self, parser):
        """Test that targetAverageValue marks the metric per instance."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetAverageValue"): "10",
        }

        metric = parser.parse_external_metric("q1", annotations)

        assert metric == ExternalMetric(
            name="q1", query="up", target_type="AverageValue", value="10"
        )
        assert metric.per_instance is True

    def test_target_value_preferred(self, parser):
        """Test that targetValue wins when both targets are given."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetValue"): "5",
            prometheus_key("q1", "targetAverageValue"): "10",
        }

        metric = parser.parse_external_metric("q1", annotations)

        assert metric.target_type == "Value"
        assert metric.value == "5"
        assert metric.per_instance is False

    def test_invalid_target_value_is_not_replaced(self, parser):
        """Test that an invalid targetValue drops the metric."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetValue"): "five",
            prometheus_key("q1", "targetAverageValue"): "10",
        }
        assert parser.parse_external_metric("q1", annotations) is None

    def test_missing_query(self, parser):
        """Test that the query is required."""
        annotations = {prometheus_key("q1", "targetValue"): "5"}
        assert parser.parse_external_metric("q1", annotations) is None

    def test_missing_target(self, parser):
        """Test that one of the targets is required."""
        annotations = {prometheus_key("q1", "query"): "up"}
        assert parser.parse_external_metric("q1", annotations) is None

    @pytest.mark.parametrize("value", ["5K", "1_0", " 5", "5ui"])
    def test_target_outside_kubernetes_grammar(self, parser, value):
        """Test that a target the API server would refuse drops the metric."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetAverageValue"): value,
        }
        assert parser.parse_external_metric("q1", annotations) is None


class TestParseAllMetrics:
    """Tests for parsing a whole annotation set."""

    def test_invalid_entry_does_not_stop_others(self, parser):
        """Test that an out-of-range CPU target leaves the memory target intact."""
        annotations = {
            MIN_REPLICAS: "1",
            MAX_REPLICAS: "3",
            MEMORY_VALUE: "1024Mi",
            CPU_UTILIZATION: "150",
        }

        result = parser.parse_all_metrics(annotations)

        assert len(result.metrics) == 1
        assert result.metrics[0].resource == "memory"
        assert [r.key for r in result.rejected] == [CPU_UTILIZATION]

    def test_invalid_quantity_keeps_other_metrics(self, parser):
        """Test that an unparseable quantity only drops its own metric."""
        annotations = {
            CPU_UTILIZATION: "80",
            MEMORY_VALUE: "1024xMi",
        }

        result = parser.parse_all_metrics(annotations)

        assert [m.resource for m in result.metrics] == ["cpu"]
        assert result.rejected[0].key == MEMORY_VALUE

    def test_uppercase_kilo_keeps_other_metrics(self, parser):
        """Test that a 500K memory target is dropped while the CPU target survives."""
        annotations = {
            MIN_REPLICAS: "1",
            MAX_REPLICAS: "3",
            CPU_UTILIZATION: "80",
            MEMORY_VALUE: "500K",
        }

        result = parser.parse_all_metrics(annotations)

        assert [m.resource for m in result.metrics] == ["cpu"]
        assert [r.key for r in result.rejected] == [MEMORY_VALUE]

    def test_metrics_in_key_order(self, parser):
        """Test that metrics follow lexicographic key order."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetValue"): "1",
            MEMORY_VALUE: "1Gi",
            CPU_UTILIZATION: "50",
        }

        result = parser.parse_all_metrics(annotations)

        assert [m.kind for m in result.metrics] == ["resource", "resource", "external"]
        assert [getattr(m, "resource", None) for m in result.metrics] == ["cpu", "memory", None]

    def test_external_metric_deduplicated(self, parser):
        """Test that several keys of one external metric produce one metric."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetAverageValue"): "10",
            prometheus_key("q2", "query"): "rate(x[1m])",
            prometheus_key("q2", "targetValue"): "3",
        }

        result = parser.parse_all_metrics(annotations)

        assert [m.name for m in result.metrics] == ["q1", "q2"]
        assert result.rejected == []

    def test_rejected_external_metric_reported_once(self, parser):
        """Test that a broken external metric is attempted only once."""
        annotations = {
            prometheus_key("q1", "query"): "up",
            prometheus_key("q1", "targetValue"): "five",
            prometheus_key("q1", "targetAverageValue"): "10",
        }

        result = parser.parse_all_metrics(annotations)

        assert result.metrics == []
        assert len(result.rejected) == 1
        assert result.rejected[0].key == prometheus_key("q1", "targetValue")

    def test_malformed_key_stops_parsing(self, parser):
        """Test that a key without the domain separator ends the parse."""
        annotations = {
            CPU_UTILIZATION: "80",
            "hpa-malformed-key": "x",
            MEMORY_VALUE: "1Gi",
        }

        result = parser.parse_all_metrics(annotations)

        assert [m.resource for m in result.metrics] == ["cpu"]
        assert result.rejected[-1].key == "hpa-malformed-key"

    def test_single_label_subdomain_stops_parsing(self, parser):
        """Test that a one-label subdomain ends the parse."""
        annotations = {"app/name": "web", MEMORY_VALUE: "1Gi"}

        result = parser.parse_all_metrics(annotations)

        assert result.metrics == []
        assert result.rejected[0].key == "app/name"

    def test_bound_keys_are_not_metrics(self, parser):
        """Test that replica bounds are passed over."""
        result = parser.parse_all_metrics({MIN_REPLICAS: "1", MAX_REPLICAS: "2"})

        assert result.metrics == []
        assert result.rejected == []
