"""Custom exception hierarchy for wmstiles."""

from typing import Optional


class WMSTilesError(Exception):
    """Base exception for the wmstiles library."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ParseError(WMSTilesError):
    """Capabilities or TileService document parsing errors."""
    pass


class ServiceError(ParseError):
    """The service answered with a ServiceExceptionReport instead of a document."""
    pass


class ConfigurationError(WMSTilesError):
    """Invalid tile source options."""
    pass


class ResolutionError(WMSTilesError):
    """No spatial profile could be resolved for a tile source."""
    pass


class TemplateError(WMSTilesError, ValueError):
    """A request template does not carry exactly four bbox placeholders."""
    pass
