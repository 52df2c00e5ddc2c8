"""Domain exceptions for Pagewise."""


class PagewiseError(Exception):
    """Base class for all Pagewise errors."""


class ConfigurationError(PagewiseError):
    """An external-service credential or setting is missing."""


class ServiceUnavailableError(PagewiseError):
    """An external provider failed: network error, non-success status or bad payload."""
