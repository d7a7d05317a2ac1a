class TrafficError(Exception):
    """Base exception for all traffic module errors."""
    code = "INTERNAL"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

class ValidationError(TrafficError):
    """Raised when request input (city, timestamps, horizon) is invalid."""
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field

class UpstreamError(TrafficError):
    """Raised when the external live-data provider fails or times out."""
    code = "UPSTREAM_ERROR"

class PersistenceError(TrafficError):
    """Raised when the persisted store is unavailable or a read/write fails."""
    code = "PERSISTENCE_ERROR"

class ConfigurationError(TrafficError):
    """Raised when configuration is invalid."""
    code = "CONFIGURATION_ERROR"
