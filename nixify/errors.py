"""Exceptions raised by Nixify."""


class NixifyError(Exception):
    """Base class for Nixify errors."""


class ConfigError(NixifyError):
    """Configuration file exists but cannot be used."""


class LockfileError(NixifyError):
    """Lockfile is missing or malformed."""


class FetchFailure(NixifyError):
    """A package could not be fetched into the cache.
    
    Attributes:
        package: Human-readable package identity
        phase: ``download`` or ``relocate``
    """
    
    def __init__(self, package: str, phase: str, reason: str):
        super().__init__(f"Failed to fetch {package} ({phase}): {reason}")
        self.package = package
        self.phase = phase
        self.reason = reason
