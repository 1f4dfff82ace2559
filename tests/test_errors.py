# =============================================================================
# Unit Tests — Error Types & Provider Error Classification
# =============================================================================

from __future__ import annotations

import pytest

from app.services.errors import (
    ChatMosaicError,
    ExchangeNotFound,
    InternalError,
    QuotaExceeded,
    ServiceUnavailable,
    ValidationFailed,
    classify_provider_error,
)


class _SdkError(Exception):
    """Mimics SDK errors that expose a numeric code and a status string."""

    def __init__(self, code, status, message):
        super().__init__(message)
        self.code = code
        self.status = status


class TestErrorTypes:
    def test_envelope(self):
        err = ValidationFailed("bad input", details={"field": "question"})
        assert err.status_code == 400
        assert err.to_dict() == {
            "error": "bad input",
            "code": "VALIDATION_ERROR",
            "details": {"field": "question"},
        }

    def test_envelope_without_details(self):
        assert "details" not in ExchangeNotFound("42").to_dict()

    def test_not_found_mentions_id(self):
        err = ExchangeNotFound("42")
        assert err.status_code == 404
        assert "42" in err.message

    def test_code_override(self):
        err = ServiceUnavailable("db down", code="DATABASE_ERROR")
        assert err.status_code == 503
        assert err.code == "DATABASE_ERROR"
        assert ServiceUnavailable("other").code == "SERVICE_UNAVAILABLE"


class TestClassifyProviderError:
    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (RuntimeError("429 Too Many Requests"), QuotaExceeded),
            (RuntimeError("Resource has been exhausted (e.g. check quota)."), QuotaExceeded),
            (_SdkError(429, "RESOURCE_EXHAUSTED", "slow down"), QuotaExceeded),
            (RuntimeError("503 The model is overloaded"), ServiceUnavailable),
            (TimeoutError("request timed out"), ServiceUnavailable),
            (RuntimeError("API key not valid. Please pass a valid API key."), ServiceUnavailable),
            (_SdkError(403, "PERMISSION_DENIED", "no access"), ServiceUnavailable),
            (_SdkError(400, "INVALID_ARGUMENT", "bad field"), ValidationFailed),
            (RuntimeError("Response blocked due to SAFETY"), ValidationFailed),
            (RuntimeError("something unexpected"), InternalError),
            (KeyError("candidates"), InternalError),
        ],
    )
    def test_classification(self, exc, expected):
        assert type(classify_provider_error(exc)) is expected

    def test_port_numbers_do_not_match_status_codes(self):
        err = classify_provider_error(RuntimeError("listening on 4000 and 5030"))
        assert isinstance(err, InternalError)

    def test_passthrough(self):
        original = QuotaExceeded("already classified")
        assert classify_provider_error(original) is original

    def test_details_carry_original_message(self):
        err = classify_provider_error(RuntimeError("weird failure"))
        assert err.details == "weird failure"
        assert isinstance(err, ChatMosaicError)
        assert err.status_code == 500
