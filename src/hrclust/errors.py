"""Error taxonomy shared by every pipeline stage.

Each error carries the ``stage`` that failed and an optional ``context`` dict
(row, column or identifier details) so the caller can tell where the run broke.
"""
from typing import Any, Optional


class PipelineError(Exception):
    """Base class for analysis pipeline failures."""

    def __init__(self, message: str, stage: str = 'pipeline', context: Optional[dict[str, Any]] = None):
        self.stage = stage
        self.context = dict(context or {})
        self.message = message
        super().__init__(f"[{stage}] {message}")

    def __reduce__(self):
        # Keep stage/context when the error crosses a process boundary
        return (self.__class__, (self.message, self.stage, self.context))


class DataIntegrityError(PipelineError):
    """Aligned artifacts disagree (row counts, identifiers, unmatched join keys)."""


class InsufficientDataError(PipelineError):
    """Fewer rows than an algorithm parameter requires."""


class ConfigurationError(PipelineError):
    """Invalid parameter values."""


class ConvergenceWarning(UserWarning):
    """Exemplar clustering hit its iteration cap before converging."""
