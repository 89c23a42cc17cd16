"""Exception hierarchy for the request logger."""


class LoggerError(Exception):
    """Base class for all request logger errors."""


class ConfigError(LoggerError):
    """Configuration is missing a required field or holds an invalid value."""


class InvalidKeyError(ConfigError):
    """Encryption key is not exactly 32 bytes."""


class BackendConnectionError(LoggerError):
    """Storage backend could not be reached at startup."""


class SinkWriteError(LoggerError):
    """A single record could not be persisted."""


class EmptyLogError(LoggerError):
    """Log file is absent or has no content."""


class FormatError(LoggerError):
    """Stored log content is not a well-formed sequence of records."""


class DecryptionError(LoggerError):
    """Envelope could not be decrypted with the configured key."""


class UnsupportedOperationError(LoggerError):
    """Operation is not available for the active backend."""
