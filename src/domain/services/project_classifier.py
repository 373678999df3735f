"""Project classifier - maps a classification response to a project type label."""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

REACT = "react"
NODE = "node"
PROJECT_TYPES = (REACT, NODE)

# Checked in this order; first label found wins.
_LABEL_RES = tuple((label, re.compile(rf"(?:^|[^a-z]){label}(?:[^a-z]|$)")) for label in PROJECT_TYPES)


@dataclass(frozen=True)
class Classification:
    """Selected project type. ambiguous=True when the default was used."""

    project_type: str
    ambiguous: bool = False


@lru_cache(maxsize=128)
def _classify_impl(text: str, default: str) -> Classification:
    for label, pattern in _LABEL_RES:
        if pattern.search(text):
            return Classification(project_type=label)
    return Classification(project_type=default, ambiguous=True)


class ProjectClassifier:
    """Resolve a free-text classification answer to one of PROJECT_TYPES."""

    def __init__(self, default: str = REACT) -> None:
        if default not in PROJECT_TYPES:
            raise ValueError(f"default must be one of {PROJECT_TYPES}, got {default!r}")
        self._default = default

    @property
    def default(self) -> str:
        return self._default

    def classify(self, response: str) -> Classification:
        """Classify a backend answer. Anything unrecognized falls back to the default."""
        result = _classify_impl(response.strip().lower(), self._default)
        if result.ambiguous:
            logger.warning(
                "Could not determine project type from %r, defaulting to %s",
                response[:100],
                self._default,
            )
        return result
