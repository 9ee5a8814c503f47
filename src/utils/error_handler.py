"""
Error recording for the organizer.
Categorizes failures reported at the operation boundary, logs them and keeps
a history that can be summarized or written out as a report.
"""

import json
import logging
import traceback
from typing import Dict, Any, List, Optional
from datetime import datetime
from pathlib import Path
from enum import Enum

from src.ordering.errors import LoadFailure, PersistenceFailure, ValidationError

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Categorization of different error types."""

    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    LOAD = "load"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorRecord:
    """Record of an error occurrence."""

    def __init__(
        self,
        error: Exception,
        context: str,
        error_type: ErrorType,
        severity: ErrorSeverity,
    ):
        self.error = error
        self.context = context
        self.error_type = error_type
        self.severity = severity
        self.timestamp = datetime.now()
        self.traceback = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "error": str(self.error),
            "context": self.context,
            "error_type": self.error_type.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback,
        }


class ErrorHandler:
    """Record and report failures. Nothing here retries."""

    def __init__(self, max_history: int = 1000):
        """
        Initialize error handler.

        Args:
            max_history: Maximum number of records kept in memory
        """
        self.max_history = max_history
        self.logger = logging.getLogger("error_handler")
        self.error_history: List[ErrorRecord] = []
        self.error_counts: Dict[ErrorType, int] = {
            error_type: 0 for error_type in ErrorType
        }

    def handle_error(self, error: Exception, context: str) -> ErrorRecord:
        """
        Record an error and log it at a level matching its severity.

        Args:
            error: The exception to record
            context: Context describing where the error occurred

        Returns:
            The stored ErrorRecord
        """
        error_type = self._categorize_error(error)
        severity = self._determine_severity(error_type)

        error_record = ErrorRecord(error, context, error_type, severity)
        self.error_history.append(error_record)
        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history :]
        self.error_counts[error_type] += 1

        message = f"Error in {context}: {str(error)}"
        extra = {"error_type": error_type.value, "severity": severity.value}
        if severity == ErrorSeverity.LOW:
            self.logger.warning(message, extra=extra)
        elif severity == ErrorSeverity.CRITICAL:
            self.logger.critical(message, extra=extra)
        else:
            self.logger.error(message, extra=extra)

        return error_record

    def _categorize_error(self, error: Exception) -> ErrorType:
        """Categorize the error type."""
        if isinstance(error, ValidationError):
            return ErrorType.VALIDATION
        elif isinstance(error, PersistenceFailure):
            return ErrorType.PERSISTENCE
        elif isinstance(error, LoadFailure):
            return ErrorType.LOAD
        elif isinstance(error, (AttributeError, ImportError, KeyError)):
            return ErrorType.CONFIGURATION
        else:
            return ErrorType.UNKNOWN

    def _determine_severity(self, error_type: ErrorType) -> ErrorSeverity:
        """Determine error severity from its type."""
        if error_type == ErrorType.VALIDATION:
            return ErrorSeverity.LOW
        elif error_type == ErrorType.PERSISTENCE:
            return ErrorSeverity.MEDIUM
        elif error_type == ErrorType.CONFIGURATION:
            return ErrorSeverity.CRITICAL
        else:
            return ErrorSeverity.HIGH

    def records_of(self, error_type: ErrorType) -> List[ErrorRecord]:
        return [r for r in self.error_history if r.error_type == error_type]

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get statistics about errors encountered."""
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts_by_type": {
                error_type.value: count
                for error_type, count in self.error_counts.items()
            },
            "recent_errors": [error.to_dict() for error in self.error_history[-10:]],
        }

    def save_error_report(self, filepath: Path):
        """Save a detailed error report to file."""
        report = {
            "generated_at": datetime.now().isoformat(),
            "statistics": self.get_error_statistics(),
            "error_history": [error.to_dict() for error in self.error_history],
        }

        with open(filepath, "w") as f:
            json.dump(report, f, indent=2)

        self.logger.info(f"Error report saved to {filepath}")
