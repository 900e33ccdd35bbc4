"""
异常定义 - 服务商错误分类
"""
from typing import Optional

import openai
import requests

BILLING_HINT = "OpenAI 账户额度已用尽，请前往 https://platform.openai.com/account/billing 充值后重试"

_BILLING_CODES = {"billing_hard_limit_reached", "insufficient_quota", "billing_not_active"}
_AUTH_CODES = {"invalid_api_key", "missing_api_key", "invalid_organization"}


class ComicoError(Exception):
    """业务异常基类"""


class ProviderError(ComicoError):
    """AI 服务商调用失败"""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """API Key 缺失或无效"""


class ProviderBillingError(ProviderError):
    """账户额度用尽，需要用户检查账单而不是简单重试"""

    def __init__(self, message: str = BILLING_HINT, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, code=code, status_code=status_code)


class ProviderRateLimitError(ProviderError):
    """请求频率超限"""


class ProviderResponseError(ProviderError):
    """服务商返回空内容或格式不符"""


class StorageError(ComicoError):
    """对象存储失败"""


class StorageNotConfiguredError(StorageError):
    """对象存储未配置"""


class StoryGenerationError(ComicoError):
    """故事生成失败（整条流水线中止）"""


class GenerationInProgressError(ComicoError, ValueError):
    """漫画正在生成中，不能重复发起"""


def _error_fields(payload) -> tuple[Optional[str], str]:
    """从 {"error": {...}} 结构中取出 code 和 message。"""
    if not isinstance(payload, dict):
        return None, ""
    error = payload.get("error", payload)
    if not isinstance(error, dict):
        return None, str(error)
    code = error.get("code") or error.get("type")
    return (str(code) if code else None), str(error.get("message") or "")


def _from_fields(code: Optional[str], message: str, status_code: Optional[int]) -> ProviderError:
    lowered = message.lower()
    if (code in _BILLING_CODES) or "billing" in lowered or "quota" in lowered:
        return ProviderBillingError(code=code, status_code=status_code)
    if status_code == 401 or code in _AUTH_CODES:
        return ProviderAuthError(message or "API Key 无效", code=code, status_code=status_code)
    if status_code == 429:
        return ProviderRateLimitError(message or "请求过于频繁", code=code, status_code=status_code)
    return ProviderError(message or "服务商调用失败", code=code, status_code=status_code)


def classify_error_payload(payload, status_code: Optional[int] = None) -> ProviderError:
    """根据服务商返回的错误 JSON 分类"""
    code, message = _error_fields(payload)
    return _from_fields(code, message, status_code)


def classify_provider_error(exc: BaseException) -> ProviderError:
    """
    将 openai / requests 原始异常映射为业务异常

    已经是 ProviderError 的原样返回
    """
    if isinstance(exc, ProviderError):
        return exc

    if isinstance(exc, openai.APIStatusError):
        code, message = _error_fields(exc.body if isinstance(exc.body, dict) else {})
        code = code or getattr(exc, "code", None)
        return _from_fields(code, message or str(exc), exc.status_code)

    if isinstance(exc, openai.APIError):
        return _from_fields(getattr(exc, "code", None), str(exc), None)

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        try:
            payload = exc.response.json()
        except ValueError:
            payload = {}
        code, message = _error_fields(payload)
        return _from_fields(code, message or str(exc), exc.response.status_code)

    return _from_fields(None, str(exc), None)
