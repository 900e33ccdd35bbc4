"""
检查 OpenAI 兼容服务商的可用状态。

Usage:
  PYTHONPATH=src .venv/bin/python scripts/check_provider_status.py
"""

from __future__ import annotations

import sys

import openai

from comico.core import get_settings
from comico.core.exceptions import (
    ProviderAuthError,
    ProviderBillingError,
    classify_provider_error,
)


def main() -> int:
    settings = get_settings()
    if not settings.openai_api_key:
        print("❌ OPENAI_API_KEY 未配置")
        return 1

    client = openai.OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
    print("正在检查服务商状态...\n")

    try:
        # 列模型是最便宜的调用
        models = client.models.list()
    except Exception as exc:  # pragma: no cover - 手动运行的工具
        error = classify_provider_error(exc)
        print(f"❌ 错误: {error}")
        if isinstance(error, ProviderAuthError):
            print("\n⚠️  API Key 无效或已被撤销，请在 https://platform.openai.com/api-keys 重新生成")
        elif isinstance(error, ProviderBillingError):
            print("\n⚠️  账户额度已达上限：")
            print("   1. 需要为账户充值")
            print("   2. 或者刚充值尚未生效（等待 5-10 分钟）")
            print("   3. 或者达到了硬性消费上限")
            print("账单页面: https://platform.openai.com/account/billing")
        return 1

    model_ids = {m.id for m in models.data}
    print("✅ API Key 有效")
    print(f"✅ 可用模型 {len(model_ids)} 个\n")
    for name in (settings.openai_chat_model, settings.openai_vision_model, settings.openai_image_model):
        print(f"{name}: {'✅ 可用' if name in model_ids else '❌ 不可用'}")

    print("\n账单与额度:")
    print("👉 https://platform.openai.com/account/billing/overview")
    print("👉 https://platform.openai.com/account/usage")
    return 0


if __name__ == "__main__":
    sys.exit(main())
