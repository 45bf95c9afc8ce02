"""Configuration system exceptions."""


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class MissingCredentialsError(ConfigError):
    """A provider was requested without the credentials it needs."""

    pass
