"""Routing module.

Classifies transcripts into configured projects and builds the output
path each transcript is filed under.
"""

from transcript_filer.routing.classifier import ProjectClassifier, calculate_confidence
from transcript_filer.routing.engine import RoutingEngine
from transcript_filer.routing.paths import DOCUMENT_EXTENSION, build_output_path

__all__ = [
    "DOCUMENT_EXTENSION",
    "ProjectClassifier",
    "RoutingEngine",
    "build_output_path",
    "calculate_confidence",
]
