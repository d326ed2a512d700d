"""LLM-based webhook classification.

This module classifies GitHub webhook payloads to determine:
- Event kind (release, tag, other)
- Repository name and catalog support
- Version string
- Whether the event is actionable, with a rationale
"""

from src.changelog.classifier.agent import (
    ClassificationError,
    EventClassifier,
    build_classification_prompt,
)
from src.changelog.classifier.models import ClassifiedEvent, EventKind

__all__ = [
    "ClassificationError",
    "ClassifiedEvent",
    "EventClassifier",
    "EventKind",
    "build_classification_prompt",
]
