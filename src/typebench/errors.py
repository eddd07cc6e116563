"""Exception types raised by typebench."""


class TypebenchError(Exception):
    """Base class for all typebench errors."""


class RecordFormatError(TypebenchError, ValueError):
    """Raised when a ground-truth or prediction record has an invalid shape.

    Attributes:
        index: Position of the offending record in its input sequence, or
            None when the problem is with the sequence itself.
        field: Name of the offending field, or None.
    """

    def __init__(self, message: str, index: int | None = None, field: str | None = None):
        super().__init__(message)
        self.index = index
        self.field = field


class ResponseParseError(TypebenchError, ValueError):
    """Raised when no JSON payload can be found in a predictor response."""


class ConfigError(TypebenchError):
    """Raised when a configuration file cannot be loaded or validated."""
