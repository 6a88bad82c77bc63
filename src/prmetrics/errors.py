"""Custom exception types for the GitHub PR metrics engine."""


class PRMetricsError(Exception):
    """Base exception for all recoverable PR metrics errors."""


class ConfigurationError(PRMetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(PRMetricsError):
    """Raised when GitHub authentication credentials are unavailable or invalid."""


class ApiError(PRMetricsError):
    """Raised when a GitHub API request fails or returns an error response."""


class DataValidationError(ApiError):
    """Raised when an API payload does not have the expected structure."""
