"""
LLM 服务封装 - 统一调用文本 / 视觉大模型
"""
from typing import Optional

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from comico.core import get_settings, get_logger
from comico.core.exceptions import (
    ProviderAuthError,
    ProviderResponseError,
    classify_provider_error,
)

logger = get_logger(__name__)


class LLMService:
    """
    LLM 服务封装

    文本模型用于故事合成，视觉模型用于照片分析；
    客户端按需创建，未配置 API Key 时在调用处报错而不是在导入时崩溃
    """

    def __init__(self):
        self.settings = get_settings()
        self._chat_llm: Optional[ChatOpenAI] = None
        self._vision_llm: Optional[ChatOpenAI] = None

    def _build(self, model: str) -> ChatOpenAI:
        if not self.settings.openai_api_key:
            raise ProviderAuthError("OPENAI_API_KEY 未配置")
        llm = ChatOpenAI(
            model=model,
            api_key=self.settings.openai_api_key,
            base_url=self.settings.openai_base_url,
            timeout=self.settings.openai_timeout,
            max_retries=0,
        )
        logger.info(f"LLM 客户端初始化完成，使用模型: {model}")
        return llm

    @property
    def chat_llm(self) -> ChatOpenAI:
        if self._chat_llm is None:
            self._chat_llm = self._build(self.settings.openai_chat_model)
        return self._chat_llm

    @property
    def vision_llm(self) -> ChatOpenAI:
        if self._vision_llm is None:
            self._vision_llm = self._build(self.settings.openai_vision_model)
        return self._vision_llm

    def chat(
        self,
        messages: list[dict],
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        """
        聊天调用

        Args:
            messages: 消息列表 [{"role": "user", "content": "..."}]
            system_prompt: 系统提示
            temperature: 温度参数
            max_tokens: 最大回复 token 数
            json_mode: 要求模型只输出 JSON 对象

        Returns:
            LLM 回复内容
        """
        langchain_messages = []
        if system_prompt:
            langchain_messages.append(SystemMessage(content=system_prompt))

        for msg in messages:
            if msg["role"] == "user":
                langchain_messages.append(HumanMessage(content=msg["content"]))
            elif msg["role"] == "assistant":
                langchain_messages.append(AIMessage(content=msg["content"]))

        options: dict = {"temperature": temperature}
        if max_tokens:
            options["max_tokens"] = max_tokens
        if json_mode:
            options["response_format"] = {"type": "json_object"}

        llm = self.chat_llm
        try:
            response = llm.bind(**options).invoke(langchain_messages)
        except Exception as e:
            raise classify_provider_error(e) from e

        content = response.content if isinstance(response.content, str) else ""
        if not content.strip():
            raise ProviderResponseError("模型没有返回内容")
        return content

    def describe_image(
        self,
        prompt: str,
        image_url: str,
        max_tokens: int = 400,
    ) -> str:
        """
        视觉模型调用：文本指令 + 单张图片

        Args:
            prompt: 分析指令
            image_url: 图片链接或 data URL
            max_tokens: 最大回复 token 数

        Returns:
            图片描述
        """
        message = HumanMessage(
            content=[
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_url}},
            ]
        )

        llm = self.vision_llm
        try:
            response = llm.bind(max_tokens=max_tokens).invoke([message])
        except Exception as e:
            raise classify_provider_error(e) from e

        content = response.content if isinstance(response.content, str) else ""
        if not content.strip():
            raise ProviderResponseError("视觉模型没有返回描述")
        return content.strip()


# 全局单例
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """获取 LLM 服务单例"""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
