"""Autoscaler synthesizers, one per autoscaler API version."""

from .base import AutoscalerSynthesizer
from .v2 import V2Synthesizer
from .v2beta1 import V2Beta1Synthesizer

__all__ = [
    "AutoscalerSynthesizer",
    "V2Synthesizer",
    "V2Beta1Synthesizer",
]
