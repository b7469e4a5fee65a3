"""
Exception types raised by techscout.

Only configuration and input-validation errors escape to callers.
``EnrichmentError`` is raised by enrichment clients and parsers and is
caught per item by the orchestrator; it never aborts a batch.
"""

from __future__ import annotations


class TechScoutError(Exception):
    """Base class for all techscout errors."""


class ConfigurationError(TechScoutError):
    """Configuration values would invalidate every verdict; fail before processing."""


class ProfileValidationError(TechScoutError):
    """A project profile could not be built from its storage rows.

    Attributes:
        problems: Human-readable description of every rejected field.
    """

    def __init__(self, project_id: str, problems: list[str]) -> None:
        self.project_id = project_id
        self.problems = problems
        detail = "; ".join(problems) or "unknown problem"
        super().__init__(f"Invalid profile for project '{project_id}': {detail}")


class EnrichmentError(TechScoutError):
    """Enrichment call failed or returned a malformed analysis."""
