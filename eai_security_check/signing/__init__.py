"""
Tamper-evident report signing.
"""

from .envelope import BEGIN_MARKER, END_MARKER, EnvelopeMetadata, SignatureEnvelope
from .signer import (
    DirectoryVerification,
    SignedReport,
    VerificationResult,
    create_verification_summary,
    extract_signature,
    short_hash,
    sign,
    verify,
    verify_directory,
    verify_file,
)

__all__ = [
    "BEGIN_MARKER",
    "END_MARKER",
    "EnvelopeMetadata",
    "SignatureEnvelope",
    "SignedReport",
    "VerificationResult",
    "DirectoryVerification",
    "sign",
    "verify",
    "verify_file",
    "verify_directory",
    "extract_signature",
    "short_hash",
    "create_verification_summary",
]
