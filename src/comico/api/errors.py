"""
API 错误映射与 SSE 工具
"""
import json

from fastapi import HTTPException

from comico.core.exceptions import (
    BILLING_HINT,
    ProviderAuthError,
    ProviderBillingError,
    GenerationInProgressError,
    ProviderError,
    StoryGenerationError,
)


def _root_provider_error(exc: BaseException):
    """StoryGenerationError 等包装异常里找出原始的服务商错误"""
    current = exc
    while current is not None:
        if isinstance(current, ProviderError):
            return current
        current = current.__cause__
    return None


def user_message(exc: BaseException) -> str:
    """给用户看的错误信息：额度问题提示去检查账单，而不是让用户重试"""
    provider_error = _root_provider_error(exc)
    if isinstance(provider_error, ProviderBillingError):
        return BILLING_HINT
    if isinstance(provider_error, ProviderAuthError):
        return "AI 服务未配置或 API Key 无效，请联系管理员"
    return str(exc) or "生成失败，请稍后重试"


def to_http_exception(exc: BaseException) -> HTTPException:
    """业务异常 → HTTP 状态码"""
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, GenerationInProgressError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, LookupError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))

    provider_error = _root_provider_error(exc)
    if isinstance(provider_error, ProviderBillingError):
        return HTTPException(status_code=402, detail=BILLING_HINT)
    if isinstance(provider_error, ProviderAuthError):
        return HTTPException(status_code=503, detail=user_message(exc))
    if isinstance(exc, (StoryGenerationError, ProviderError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def sse_event(data: dict) -> str:
    """格式化 SSE 事件。"""
    return f"data: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"


SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
