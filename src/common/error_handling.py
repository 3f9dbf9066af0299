"""
Centralized error handling for the intent signal pipeline.

Error taxonomy:
- SetupError: fatal, raised before any work (registry unreachable, missing
  credentials, browser launch failure). Batch scripts exit with code 1.
- SourceFetchError: transient failure of one network call to an external
  source. Retried once inside the adapter, then the item is skipped.
- Persistence failures: logged per item and recorded in the ErrorCollector.

Per-item failures are collected as PipelineError entries and summarized at
the end of a run; they never abort the batch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


class IntentPipelineError(Exception):
    """Base exception for intent pipeline errors."""
    pass


class SetupError(IntentPipelineError):
    """Raised when a run cannot start (fatal, exit code 1)."""
    pass


class SourceFetchError(IntentPipelineError):
    """Raised when a single fetch against an external source fails."""

    def __init__(self, source: str, target: str, message: str):
        self.source = source
        self.target = target
        super().__init__(f"{source} fetch failed for '{target}': {message}")


@dataclass
class PipelineError:
    """
    Structured error information for per-item failures.

    Provides consistent error tracking with severity and recoverability.
    """

    stage: str  # e.g., "crawl", "search", "persist"
    operation: str  # e.g., "page_fetch", "upsert_intent"
    severity: str  # "critical", "high", "medium", "low"
    message: str
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    recoverable: bool = True
    exception_type: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "stage": self.stage,
            "operation": self.operation,
            "severity": self.severity,
            "message": self.message,
            "timestamp": self.timestamp,
            "recoverable": self.recoverable,
            "exception_type": self.exception_type,
        }


class ErrorCollector:
    """
    Collects errors during pipeline execution.

    Provides aggregation and summary capabilities for error tracking.
    """

    def __init__(self):
        self.errors: List[PipelineError] = []

    def __len__(self) -> int:
        return len(self.errors)

    def clear(self) -> None:
        """Forget the errors of a previous run."""
        self.errors.clear()

    def add_error(
        self,
        stage: str,
        operation: str,
        message: str,
        severity: str = "medium",
        recoverable: bool = True,
        exception: Optional[Exception] = None,
    ) -> None:
        """Convenience method to add an error with parameters."""
        error = PipelineError(
            stage=stage,
            operation=operation,
            message=message,
            severity=severity,
            recoverable=recoverable,
            exception_type=type(exception).__name__ if exception else None,
        )
        self.errors.append(error)

    def has_critical_errors(self) -> bool:
        """True once a non-recoverable critical error marks the run as failed."""
        return any(e.severity == "critical" and not e.recoverable for e in self.errors)

    def summary(self) -> dict:
        """Get error summary statistics."""
        by_severity = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        by_stage: dict = {}
        for error in self.errors:
            if error.severity in by_severity:
                by_severity[error.severity] += 1
            by_stage[error.stage] = by_stage.get(error.stage, 0) + 1
        return {
            "total": len(self.errors),
            "by_severity": by_severity,
            "by_stage": by_stage,
            "recoverable": sum(1 for e in self.errors if e.recoverable),
            "non_recoverable": sum(1 for e in self.errors if not e.recoverable),
        }

