"""
Signature envelope grammar.

A signed report is the original report text followed by a trailing block::

    <content>
    -----BEGIN EAI SECURITY SIGNATURE-----
    algorithm: hmac-sha256
    timestamp: 2025-01-01T00:00:00+00:00
    hash: <64 hex characters>
    meta.platform: linux
    meta.hostname: workstation
    -----END EAI SECURITY SIGNATURE-----

The newline before the begin marker belongs to the envelope, so the content is
recovered byte for byte. When the begin marker occurs more than once the last
occurrence is the envelope.
"""

import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..core.errors import EnvelopeError

BEGIN_MARKER = "-----BEGIN EAI SECURITY SIGNATURE-----"
END_MARKER = "-----END EAI SECURITY SIGNATURE-----"
SEPARATOR = f"\n{BEGIN_MARKER}\n"

ALGORITHM = "hmac-sha256"
REQUIRED_KEYS = ("algorithm", "timestamp", "hash")
META_PREFIX = "meta."

HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")


class EnvelopeMetadata(BaseModel):
    """Facts about where the report was produced."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    platform: str
    hostname: str
    distribution: Optional[str] = None
    config_source: Optional[str] = None
    version: Optional[str] = None

    @field_validator("*")
    @classmethod
    def _single_line(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and ("\n" in value or "\r" in value):
            raise ValueError("metadata values must be a single line")
        return value

    def canonical(self) -> str:
        """Sorted ``key=value`` lines; this is what the MAC covers."""
        return "\n".join(
            f"{key}={value}" for key, value in sorted(self.as_dict().items())
        )

    def as_dict(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class SignatureEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    algorithm: str = ALGORITHM
    hash: str
    timestamp: str
    metadata: EnvelopeMetadata


def render_envelope(envelope: SignatureEnvelope) -> str:
    """Render the trailing signature block, including the leading newline."""
    lines = [
        f"algorithm: {envelope.algorithm}",
        f"timestamp: {envelope.timestamp}",
        f"hash: {envelope.hash}",
    ]
    for key, value in envelope.metadata.as_dict().items():
        lines.append(f"{META_PREFIX}{key}: {value}")
    return SEPARATOR + "\n".join(lines) + f"\n{END_MARKER}\n"


def has_envelope(text: str) -> bool:
    return SEPARATOR in text


def strip_envelope(text: str) -> str:
    """Content without its trailing envelope; text without a well-formed one is returned as is."""
    try:
        content, _ = parse_envelope(text)
    except EnvelopeError:
        return text
    return content


def parse_envelope(text: str) -> Tuple[str, SignatureEnvelope]:
    """
    Split signed text into the original content and its envelope.

    Raises:
        EnvelopeError: if the block is missing or does not follow the grammar
    """
    index = text.rfind(SEPARATOR)
    if index == -1:
        raise EnvelopeError("signature block not found")

    content = text[:index]
    body = _envelope_body(text[index + len(SEPARATOR):])
    fields = _parse_fields(body)

    missing = [key for key in REQUIRED_KEYS if key not in fields]
    if missing:
        raise EnvelopeError(f"missing required field(s): {', '.join(missing)}")

    if fields["algorithm"] != ALGORITHM:
        raise EnvelopeError(f"unsupported algorithm: {fields['algorithm']}")
    if not HASH_PATTERN.match(fields["hash"]):
        raise EnvelopeError("hash must be 64 lowercase hexadecimal characters")

    metadata = {
        key[len(META_PREFIX):]: value
        for key, value in fields.items()
        if key.startswith(META_PREFIX)
    }
    try:
        envelope = SignatureEnvelope(
            algorithm=fields["algorithm"],
            hash=fields["hash"],
            timestamp=fields["timestamp"],
            metadata=EnvelopeMetadata(**metadata),
        )
    except ValidationError as e:
        raise EnvelopeError(f"invalid metadata: {e.errors()[0]['msg']}") from e

    return content, envelope


def _envelope_body(rest: str) -> List[str]:
    lines = rest.split("\n")
    try:
        end = lines.index(END_MARKER)
    except ValueError:
        raise EnvelopeError("end of signature block not found")

    if any(line.strip() for line in lines[end + 1:]):
        raise EnvelopeError("unexpected data after signature block")
    return lines[:end]


def _parse_fields(body: List[str]) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for number, line in enumerate(body, start=1):
        key, sep, value = line.partition(": ")
        if not sep or not key:
            raise EnvelopeError(f"line {number} of signature block is not 'key: value'")
        if key in fields:
            raise EnvelopeError(f"duplicate field: {key}")
        if key not in REQUIRED_KEYS and not key.startswith(META_PREFIX):
            raise EnvelopeError(f"unknown field: {key}")
        fields[key] = value
    return fields
