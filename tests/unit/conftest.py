"""Shared fixtures for unit tests."""

import pytest

from hpaoperator.annotations import AnnotationFilter
from hpaoperator.config import AnnotationSchema
from hpaoperator.models import WorkloadRef
from hpaoperator.parser import MetricParser
from hpaoperator.synthesizers import V2Synthesizer


@pytest.fixture
def schema():
    return AnnotationSchema()


@pytest.fixture
def annotation_filter(schema):
    return AnnotationFilter(schema)


@pytest.fixture
def parser(schema):
    return MetricParser(schema)


@pytest.fixture
def synthesizer(schema):
    return V2Synthesizer(schema)


@pytest.fixture
def make_workload():
    def _make(annotations=None, pod_annotations=None, name="test", kind="Deployment"):
        return WorkloadRef(
            name=name,
            namespace="default",
            kind=kind,
            api_version="apps/v1",
            uid="6f1d3c2e-0000-4000-8000-000000000001",
            annotations=annotations or {},
            pod_annotations=pod_annotations or {},
        )

    return _make
