class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class ConfigurationError(AppError):
    pass


class DataAccessError(AppError):
    """Raised by remote data-access adapters when the upstream call fails."""
