"""
Tests for eai_security_check.signing modules.
"""

import pytest

from eai_security_check.core.errors import EnvelopeError, SigningError
from eai_security_check.signing.envelope import (
    BEGIN_MARKER,
    END_MARKER,
    parse_envelope,
    strip_envelope,
)
from eai_security_check.signing.signer import (
    create_verification_summary,
    extract_signature,
    short_hash,
    sign,
    verify,
    verify_directory,
    verify_file,
)

METADATA = {"platform": "linux", "hostname": "workstation", "distribution": "fedora"}
CONTENT = "🔒 LINUX SECURITY AUDIT REPORT\nOverall Status: PASSED\n"


def envelope_text(*lines, trailer=""):
    body = "\n".join(lines)
    return f"report\n{BEGIN_MARKER}\n{body}\n{END_MARKER}\n{trailer}"


VALID_LINES = (
    "algorithm: hmac-sha256",
    "timestamp: 2025-01-01T00:00:00+00:00",
    "hash: " + "a" * 64,
    "meta.platform: linux",
    "meta.hostname: box",
)


class TestEnvelopeGrammar:
    """Test cases for the envelope parser."""

    def test_parse_valid(self):
        content, envelope = parse_envelope(envelope_text(*VALID_LINES))

        assert content == "report"
        assert envelope.hash == "a" * 64
        assert envelope.metadata.hostname == "box"

    def test_missing_block(self):
        with pytest.raises(EnvelopeError):
            parse_envelope("just a report\n")

    def test_missing_end_marker(self):
        text = f"report\n{BEGIN_MARKER}\n" + "\n".join(VALID_LINES)
        with pytest.raises(EnvelopeError):
            parse_envelope(text)

    @pytest.mark.parametrize(
        "lines",
        [
            VALID_LINES + ("hash: " + "b" * 64,),
            VALID_LINES + ("signer: someone",),
            VALID_LINES + ("not a field",),
            VALID_LINES[1:],
            ("algorithm: md5",) + VALID_LINES[1:],
            VALID_LINES[:2] + ("hash: XYZ",) + VALID_LINES[3:],
            VALID_LINES[:2] + ("hash: " + "a" * 63,) + VALID_LINES[3:],
            VALID_LINES[:3] + ("meta.hostname: box",),
            VALID_LINES + ("meta.owner: me",),
        ],
    )
    def test_malformed_envelopes(self, lines):
        with pytest.raises(EnvelopeError):
            parse_envelope(envelope_text(*lines))

    def test_trailing_data_rejected(self):
        with pytest.raises(EnvelopeError):
            parse_envelope(envelope_text(*VALID_LINES, trailer="appended text\n"))

    def test_trailing_whitespace_allowed(self):
        content, _ = parse_envelope(envelope_text(*VALID_LINES, trailer="\n  \n"))
        assert content == "report"

    def test_last_begin_marker_is_authoritative(self):
        inner = f"{BEGIN_MARKER}\nquoted\n"
        content, _ = parse_envelope(envelope_text(*VALID_LINES).replace("report", inner))

        assert content == inner

    def test_strip_envelope(self):
        assert strip_envelope(envelope_text(*VALID_LINES)) == "report"
        assert strip_envelope("plain") == "plain"


class TestSigner:
    """Test cases for sign and verify."""

    def test_round_trip(self, signing_secret):
        signed = sign(CONTENT, METADATA)
        result = verify(signed.signed_content)

        assert signed.signed_content.startswith(CONTENT)
        assert result.is_valid is True
        assert result.tampered is False
        assert result.metadata.distribution == "fedora"
        assert result.original_hash == signed.envelope.hash

    def test_round_trip_without_trailing_newline(self, signing_secret):
        signed = sign("no newline at end", METADATA)

        assert verify(signed.signed_content).is_valid is True
        assert strip_envelope(signed.signed_content) == "no newline at end"

    def test_single_character_change_detected(self, signing_secret):
        signed = sign(CONTENT, METADATA)
        tampered = signed.signed_content.replace("PASSED", "PASSES", 1)
        result = verify(tampered)

        assert result.is_valid is False
        assert result.tampered is True
        assert result.original_hash != result.calculated_hash
        assert short_hash(result.original_hash) != short_hash(result.calculated_hash)

    def test_metadata_change_detected(self, signing_secret):
        signed = sign(CONTENT, METADATA)
        tampered = signed.signed_content.replace(
            "meta.hostname: workstation", "meta.hostname: laptop"
        )

        assert verify(tampered).is_valid is False

    def test_signing_is_idempotent(self, signing_secret):
        first = sign(CONTENT, METADATA)
        second = sign(CONTENT, METADATA)

        assert first.envelope.hash == second.envelope.hash

    def test_resigning_replaces_envelope(self, signing_secret):
        signed = sign(CONTENT, METADATA)
        resigned = sign(signed.signed_content, METADATA)

        assert resigned.signed_content.count(BEGIN_MARKER) == 1
        assert verify(resigned.signed_content).is_valid is True

    def test_marker_line_inside_content_is_kept(self, signing_secret):
        """Only a well-formed trailing envelope is removed before signing."""
        content = f"head\n{BEGIN_MARKER}\nuser text tail\n"
        signed = sign(content, METADATA)

        assert signed.signed_content.startswith(content)
        assert strip_envelope(signed.signed_content) == content
        assert verify(signed.signed_content).is_valid is True

    def test_wrong_secret(self, signing_secret):
        signed = sign(CONTENT, METADATA)
        result = verify(signed.signed_content, secret="another-secret")

        assert result.is_valid is False
        assert result.calculated_hash is not None

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv("EAI_BUILD_SECRET", raising=False)

        with pytest.raises(SigningError):
            sign(CONTENT, METADATA)

        signed = sign(CONTENT, METADATA, secret="explicit")
        result = verify(signed.signed_content)
        assert result.is_valid is False
        assert "EAI_BUILD_SECRET" in result.message

    def test_invalid_metadata(self, signing_secret):
        with pytest.raises(SigningError):
            sign(CONTENT, {"platform": "linux"})
        with pytest.raises(SigningError):
            sign(CONTENT, {"platform": "linux", "hostname": "a\nb"})

    def test_verify_unsigned_content(self, signing_secret):
        result = verify(CONTENT)

        assert result.is_valid is False
        assert "signature block not found" in result.message

    def test_extract_signature(self, signing_secret):
        signed = sign(CONTENT, METADATA)

        assert extract_signature(signed.signed_content) == signed.envelope
        assert extract_signature(CONTENT) is None

    def test_short_hash(self):
        assert short_hash("0123456789abcdef" * 4) == "0123456789AB"

    def test_verification_summary(self, signing_secret):
        signed = sign(CONTENT, METADATA)

        summary = create_verification_summary(verify(signed.signed_content))
        assert "VERIFIED" in summary
        assert signed.short_hash in summary

        summary = create_verification_summary(verify(signed.signed_content + "x"))
        assert "FAILED" in summary


class TestFileVerification:
    """Test cases for verify_file and verify_directory."""

    def test_verify_file(self, tmp_path, signing_secret):
        path = tmp_path / "report.txt"
        path.write_text(sign(CONTENT, METADATA).signed_content, encoding="utf-8")

        assert verify_file(path).is_valid is True
        assert verify_file(tmp_path / "missing.txt").is_valid is False

    def test_carriage_return_change_detected(self, tmp_path, signing_secret):
        """Files are hashed byte for byte, without newline translation."""
        signed = sign("line one\nline two\n", METADATA).signed_content
        path = tmp_path / "report.txt"
        path.write_bytes(signed.replace("\n", "\r", 1).encode("utf-8"))

        result = verify_file(path)
        assert result.is_valid is False
        assert result.tampered is True

    def test_crlf_file_detected(self, tmp_path, signing_secret):
        signed = sign(CONTENT, METADATA).signed_content
        path = tmp_path / "report.txt"
        path.write_bytes(signed.replace("\n", "\r\n").encode("utf-8"))

        assert verify_file(path).is_valid is False

    def test_verify_directory(self, tmp_path, signing_secret):
        signed = sign(CONTENT, METADATA).signed_content
        (tmp_path / "a.txt").write_text(signed, encoding="utf-8")
        (tmp_path / "b.txt").write_text(signed.replace("PASSED", "FAILED"), encoding="utf-8")
        (tmp_path / "notes.txt").write_text("unsigned", encoding="utf-8")
        (tmp_path / "nested").mkdir()

        summary = verify_directory(tmp_path)

        assert summary.passed == ["a.txt"]
        assert summary.failed == ["b.txt"]
        assert summary.skipped == ["notes.txt"]
        assert summary.all_valid is False
