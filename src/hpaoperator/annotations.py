"""Selection of the autoscaling annotations out of an object's annotations."""

import re
import logging
from typing import Dict, Mapping, Optional

from .config import AnnotationSchema

logger = logging.getLogger(__name__)


def build_key_pattern(schema: AnnotationSchema) -> str:
    """Regular expression matching ``<optional-subdomain>.<domain>/<field>``."""
    if schema.key_pattern:
        return schema.key_pattern

    label = r"[A-Za-z0-9]([A-Za-z0-9\-]*[A-Za-z0-9])?"
    return (
        rf"(?:{label}{re.escape(schema.subdomain_separator)})*"
        rf"{re.escape(schema.domain)}{re.escape(schema.domain_separator)}"
        r"[A-Za-z0-9.]+"
    )


class AnnotationFilter:
    """Extracts the annotations that belong to the autoscaling domain."""

    def __init__(self, schema: AnnotationSchema):
        self.schema = schema
        self.pattern = re.compile(build_key_pattern(schema))

    def matches(self, key: str) -> bool:
        return self.pattern.fullmatch(key) is not None

    def filter(self, annotations: Optional[Mapping[str, str]]) -> Dict[str, str]:
        """
        Return the subset of annotations recognized as autoscaling config.

        Matching is syntactic only; values are not looked at.

        Args:
            annotations: Key/value annotation mapping, may be None

        Returns:
            Matching annotations, empty when nothing matches
        """
        if not annotations:
            return {}
        return {key: value for key, value in annotations.items() if self.matches(key)}

    def has_annotations(self, annotations: Optional[Mapping[str, str]]) -> bool:
        if not annotations:
            return False
        return any(self.matches(key) for key in annotations)
