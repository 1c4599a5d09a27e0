"""
Tamper-evident signing and verification of rendered reports.
"""

import hashlib
import hmac
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from ..core.errors import EnvelopeError, HashMismatchError, SigningError
from ..core.logging_config import get_logger
from .envelope import (
    ALGORITHM,
    EnvelopeMetadata,
    SignatureEnvelope,
    has_envelope,
    parse_envelope,
    render_envelope,
    strip_envelope,
)

logger = get_logger(__name__)

SECRET_ENV_VAR = "EAI_BUILD_SECRET"
SHORT_HASH_LENGTH = 12


class SignedReport(BaseModel):
    signed_content: str
    envelope: SignatureEnvelope
    short_hash: str
    timestamp: str


class VerificationResult(BaseModel):
    is_valid: bool
    message: str
    original_hash: Optional[str] = None
    calculated_hash: Optional[str] = None
    metadata: Optional[EnvelopeMetadata] = None
    timestamp: Optional[str] = None
    tampered: bool = False


class DirectoryVerification(BaseModel):
    """Verification outcome for every file in a directory."""

    results: Dict[str, VerificationResult] = {}
    skipped: List[str] = []

    @property
    def passed(self) -> List[str]:
        return [name for name, result in self.results.items() if result.is_valid]

    @property
    def failed(self) -> List[str]:
        return [name for name, result in self.results.items() if not result.is_valid]

    @property
    def all_valid(self) -> bool:
        return bool(self.results) and not self.failed


def get_build_secret(secret: Optional[str] = None) -> str:
    """Explicit secret, falling back to the EAI_BUILD_SECRET environment variable."""
    secret = secret or os.environ.get(SECRET_ENV_VAR)
    if not secret:
        raise SigningError(
            f"{SECRET_ENV_VAR} environment variable is required for tamper detection"
        )
    return secret


def compute_hash(content: str, metadata: EnvelopeMetadata, secret: str) -> str:
    message = content.encode("utf-8") + b"\x00" + metadata.canonical().encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def short_hash(full_hash: str) -> str:
    """Fixed-length, upper-case prefix of a hash for display."""
    return full_hash[:SHORT_HASH_LENGTH].upper()


def sign(
    content: str,
    metadata: Union[EnvelopeMetadata, Dict[str, Any]],
    secret: Optional[str] = None,
) -> SignedReport:
    """
    Append a signature envelope to report content.

    An envelope already present in ``content`` is replaced, not nested.

    Raises:
        SigningError: if no secret is available or the metadata is invalid
    """
    key = get_build_secret(secret)

    if not isinstance(metadata, EnvelopeMetadata):
        try:
            metadata = EnvelopeMetadata(**metadata)
        except ValidationError as e:
            raise SigningError(f"invalid signature metadata: {e}") from e

    content = strip_envelope(content)
    timestamp = datetime.now(timezone.utc).isoformat()
    envelope = SignatureEnvelope(
        algorithm=ALGORITHM,
        hash=compute_hash(content, metadata, key),
        timestamp=timestamp,
        metadata=metadata,
    )
    logger.debug("Signed report %s", short_hash(envelope.hash))

    return SignedReport(
        signed_content=content + render_envelope(envelope),
        envelope=envelope,
        short_hash=short_hash(envelope.hash),
        timestamp=timestamp,
    )


def _check_hash(original_hash: str, calculated_hash: str) -> None:
    if not hmac.compare_digest(original_hash, calculated_hash):
        raise HashMismatchError(original_hash, calculated_hash)


def verify(file_content: str, secret: Optional[str] = None) -> VerificationResult:
    """
    Re-validate a signed report. Never raises; problems become is_valid=False.
    """
    try:
        content, envelope = parse_envelope(file_content)
    except EnvelopeError as e:
        return VerificationResult(
            is_valid=False,
            message=f"Invalid report format: {e}",
            tampered=True,
        )

    try:
        key = get_build_secret(secret)
    except SigningError as e:
        return VerificationResult(
            is_valid=False,
            message=str(e),
            original_hash=envelope.hash,
            metadata=envelope.metadata,
            timestamp=envelope.timestamp,
        )

    calculated = compute_hash(content, envelope.metadata, key)
    try:
        _check_hash(envelope.hash, calculated)
    except HashMismatchError as e:
        logger.debug(
            "Hash mismatch: stored %s, calculated %s",
            short_hash(e.original_hash),
            short_hash(e.calculated_hash),
        )
        return VerificationResult(
            is_valid=False,
            message=str(e),
            original_hash=e.original_hash,
            calculated_hash=e.calculated_hash,
            metadata=envelope.metadata,
            timestamp=envelope.timestamp,
            tampered=True,
        )

    return VerificationResult(
        is_valid=True,
        message="Report integrity verified successfully",
        original_hash=envelope.hash,
        calculated_hash=calculated,
        metadata=envelope.metadata,
        timestamp=envelope.timestamp,
    )


def extract_signature(file_content: str) -> Optional[SignatureEnvelope]:
    """The envelope of a signed report, or None if it is missing or corrupt."""
    try:
        return parse_envelope(file_content)[1]
    except EnvelopeError:
        return None


def read_report(path: Path) -> str:
    """Exact file text; no newline translation so every byte is hashed."""
    return path.read_bytes().decode("utf-8")


def verify_file(path: Union[str, Path], secret: Optional[str] = None) -> VerificationResult:
    path = Path(path)
    try:
        file_content = read_report(path)
    except (OSError, UnicodeDecodeError) as e:
        return VerificationResult(is_valid=False, message=f"Cannot read {path}: {e}")
    return verify(file_content, secret)


def verify_directory(
    path: Union[str, Path], secret: Optional[str] = None
) -> DirectoryVerification:
    """Verify every signed file directly inside ``path``; unsigned files are skipped."""
    summary = DirectoryVerification()
    for file_path in sorted(Path(path).iterdir()):
        if not file_path.is_file():
            continue
        try:
            file_content = read_report(file_path)
        except (OSError, UnicodeDecodeError):
            summary.skipped.append(file_path.name)
            continue

        if not has_envelope(file_content):
            summary.skipped.append(file_path.name)
            continue
        summary.results[file_path.name] = verify(file_content, secret)

    logger.debug(
        "Verified %s: %s passed, %s failed, %s skipped",
        path,
        len(summary.passed),
        len(summary.failed),
        len(summary.skipped),
    )
    return summary


def create_verification_summary(result: VerificationResult) -> str:
    """Human readable verification summary."""
    lines = ["", "🔒 Report Verification", "=" * 50]

    if result.is_valid:
        lines.append("✅ Report integrity: VERIFIED")
        lines.append(f"🔐 Hash: {short_hash(result.original_hash or '')}")
    else:
        lines.append("❌ Report integrity: FAILED")
        lines.append(f"⚠️  {result.message}")
        if result.original_hash:
            lines.append(f"🔐 Original hash: {short_hash(result.original_hash)}")
        if result.calculated_hash:
            lines.append(f"🔐 Calculated hash: {short_hash(result.calculated_hash)}")

    if result.timestamp:
        lines.append(f"📅 Generated: {result.timestamp}")
    if result.metadata is not None:
        lines.append(f"💻 Platform: {result.metadata.platform}")
        lines.append(f"🖥️  Hostname: {result.metadata.hostname}")
        if result.metadata.distribution:
            lines.append(f"🐧 Distribution: {result.metadata.distribution}")
        if result.metadata.config_source:
            lines.append(f"📋 Config: {result.metadata.config_source}")
        if result.metadata.version:
            lines.append(f"📦 Version: {result.metadata.version}")

    lines.append("=" * 50)
    return "\n".join(lines) + "\n"
