"""
Exception hierarchy for eai-security-check.

Only ``ConfigError``, ``SigningError`` and ``UnsupportedPlatformError`` ever
reach a caller. Probe and verification errors are converted into structured
results at the checker and verifier boundaries.
"""

from typing import Optional


class SecurityCheckError(Exception):
    """Base class for all eai-security-check errors."""


class ConfigError(SecurityCheckError):
    """Malformed or missing security configuration."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class ProbeFailure(SecurityCheckError):
    """A system probe could not determine a fact."""

    def __init__(self, probe: str, reason: str):
        self.probe = probe
        self.reason = reason
        super().__init__(f"{probe}: {reason}")


class EnvelopeError(SecurityCheckError):
    """Missing or corrupt signature block."""


class HashMismatchError(SecurityCheckError):
    """Stored and recalculated report hashes differ."""

    def __init__(self, original_hash: str, calculated_hash: str):
        self.original_hash = original_hash
        self.calculated_hash = calculated_hash
        super().__init__("Report has been tampered with or corrupted")


class SigningError(SecurityCheckError):
    """Report signing could not be performed (e.g. no secret available)."""


class UnsupportedPlatformError(SecurityCheckError):
    """No checker implementation exists for the detected platform."""
