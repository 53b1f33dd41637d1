"""
Custom exceptions for Explain Doctor
"""

from typing import Optional, Any


class ExplainDoctorError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ExplainDoctorError):
    """Configuration related errors"""
    pass


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(ExplainDoctorError):
    """Base database error"""
    pass


class QueryExecutionError(DatabaseError):
    """Query execution failed"""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        details = {"query": query[:500] if query else None, **kwargs}
        super().__init__(message, details)


class QueryTimeoutError(QueryExecutionError):
    """Query execution timed out"""
    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ExplainDoctorError):
    """Base validation error"""
    pass


class InvalidIdentifierError(ValidationError):
    """Table or database name cannot be safely quoted"""

    def __init__(self, identifier: str, kind: str = "table"):
        message = f"Invalid {kind} name: {identifier!r}"
        super().__init__(message, {"identifier": identifier, "kind": kind})


# =============================================================================
# Analysis Errors
# =============================================================================


class AnalysisError(ExplainDoctorError):
    """Analysis related errors"""
    pass


class ExecutionPlanError(AnalysisError):
    """Failed to parse or analyze execution plan"""

    @property
    def user_message(self) -> str:
        """Explanation suitable for showing to the end user"""
        return self.message


class InvalidExplainDataError(ExecutionPlanError):
    """EXPLAIN payload is not a JSON object"""

    def __init__(self, reason: str = ""):
        message = "Invalid EXPLAIN data received. The query may not have been executed properly."
        super().__init__(message, {"reason": reason} if reason else None)


class NoPlanAvailableError(ExecutionPlanError):
    """Input carries no query block, e.g. a system or catalog query"""

    def __init__(self, keys: Optional[list] = None):
        message = (
            "EXPLAIN is not available for Performance Schema or system tables. "
            "Please try with a regular user table query."
        )
        super().__init__(message, {"keys": keys} if keys else None)


class MetadataLoadError(AnalysisError):
    """Failed to load table metadata"""

    def __init__(self, table: str, reason: str = ""):
        message = f"Failed to fetch metadata for table {table}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"table": table})
        self.table = table


class DiagnosticsError(AnalysisError):
    """Diagnostics were applied to a node in an invalid state"""
    pass


# =============================================================================
# Service Errors
# =============================================================================


class ServiceError(ExplainDoctorError):
    """Service layer errors"""
    pass


class CacheError(ServiceError):
    """Cache related errors"""
    pass
