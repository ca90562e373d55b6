"""Exceptions raised by filedrop; each carries the process exit code."""


class FiledropError(Exception):
    exit_code = 1


class UsageError(FiledropError):
    """Missing or malformed command argument."""

    exit_code = 1


class ConfigError(FiledropError):
    """Required configuration value is missing or invalid."""

    def __init__(self, message: str, exit_code: int = 4):
        super().__init__(message)
        self.exit_code = exit_code


class RemoteError(FiledropError):
    """An S3/STS call failed."""

    exit_code = 1
