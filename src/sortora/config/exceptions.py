"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when configuration data cannot be processed."""


class RuleValidationError(ConfigError):
    """Raised when a rule definition or destination template is malformed."""
