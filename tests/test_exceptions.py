"""
服务商错误分类测试
"""
import json

import httpx
import openai
import pytest
import requests

from comico.core.exceptions import (
    BILLING_HINT,
    ProviderAuthError,
    ProviderBillingError,
    ProviderError,
    ProviderRateLimitError,
    classify_error_payload,
    classify_provider_error,
)


def _http_error(status_code: int, payload) -> requests.HTTPError:
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(payload).encode("utf-8")
    return requests.HTTPError(f"{status_code} error", response=response)


def _openai_error(cls, status_code: int, body: dict):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return cls("provider error", response=response, body=body)


class TestClassifyRequestsErrors:
    """requests 异常分类"""

    def test_billing_limit(self):
        error = classify_provider_error(
            _http_error(400, {"error": {"code": "billing_hard_limit_reached", "message": "Billing hard limit has been reached"}})
        )
        assert isinstance(error, ProviderBillingError)
        assert str(error) == BILLING_HINT

    def test_unauthorized(self):
        error = classify_provider_error(_http_error(401, {"error": {"message": "Incorrect API key provided"}}))
        assert isinstance(error, ProviderAuthError)
        assert error.status_code == 401

    def test_rate_limited(self):
        error = classify_provider_error(_http_error(429, {"error": {"message": "Rate limit reached"}}))
        assert isinstance(error, ProviderRateLimitError)

    def test_non_json_body(self):
        response = requests.Response()
        response.status_code = 500
        response._content = b"<html>oops</html>"
        error = classify_provider_error(requests.HTTPError("500 Server Error", response=response))
        assert type(error) is ProviderError
        assert error.status_code == 500


class TestClassifyOpenAIErrors:
    """openai SDK 异常分类"""

    def test_insufficient_quota(self):
        exc = _openai_error(
            openai.RateLimitError,
            429,
            {"code": "insufficient_quota", "message": "You exceeded your current quota"},
        )
        assert isinstance(classify_provider_error(exc), ProviderBillingError)

    def test_plain_rate_limit(self):
        exc = _openai_error(openai.RateLimitError, 429, {"message": "Too many requests"})
        assert isinstance(classify_provider_error(exc), ProviderRateLimitError)

    def test_authentication(self):
        exc = _openai_error(openai.AuthenticationError, 401, {"code": "invalid_api_key", "message": "bad key"})
        assert isinstance(classify_provider_error(exc), ProviderAuthError)


class TestClassifyPayload:
    """错误 JSON 分类"""

    def test_payload_message_mentions_quota(self):
        error = classify_error_payload({"error": {"message": "insufficient quota for this request"}}, 400)
        assert isinstance(error, ProviderBillingError)

    def test_already_classified_passes_through(self):
        original = ProviderRateLimitError("slow down")
        assert classify_provider_error(original) is original

    @pytest.mark.parametrize("payload", [None, "boom", {"error": "boom"}])
    def test_odd_payloads(self, payload):
        assert isinstance(classify_error_payload(payload), ProviderError)
