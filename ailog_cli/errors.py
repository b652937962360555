class AilogError(Exception):
    """Base class for errors raised by ailog."""


class ConfigError(AilogError):
    """A configuration value is missing or out of range."""


class FlagError(AilogError):
    """The attribution flag could not be written, claimed or removed."""


class RecorderError(AilogError):
    """The commit recorder could not store a record."""
