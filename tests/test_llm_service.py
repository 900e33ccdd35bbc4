"""
LLM 服务封装测试
"""
from unittest.mock import Mock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from comico.core.exceptions import ProviderAuthError, ProviderRateLimitError, ProviderResponseError
from comico.services.llm_service import LLMService


def _service_with(llm: Mock) -> LLMService:
    service = LLMService()
    service._chat_llm = llm
    service._vision_llm = llm
    return service


class TestLLMService:
    """LLMService 测试"""

    def test_chat_json_mode_options(self):
        llm = Mock()
        llm.bind.return_value.invoke.return_value = AIMessage(content='{"title": "t"}')

        content = _service_with(llm).chat(
            [{"role": "user", "content": "hi"}],
            system_prompt="system",
            temperature=0.8,
            max_tokens=1500,
            json_mode=True,
        )

        assert content == '{"title": "t"}'
        assert llm.bind.call_args.kwargs == {
            "temperature": 0.8,
            "max_tokens": 1500,
            "response_format": {"type": "json_object"},
        }
        messages = llm.bind.return_value.invoke.call_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)

    def test_empty_content(self):
        llm = Mock()
        llm.bind.return_value.invoke.return_value = AIMessage(content="  ")
        with pytest.raises(ProviderResponseError):
            _service_with(llm).chat([{"role": "user", "content": "hi"}])

    def test_provider_errors_are_classified(self):
        llm = Mock()
        llm.bind.return_value.invoke.side_effect = ProviderRateLimitError("slow down")
        with pytest.raises(ProviderRateLimitError):
            _service_with(llm).chat([{"role": "user", "content": "hi"}])

    def test_describe_image_sends_image_part(self):
        llm = Mock()
        llm.bind.return_value.invoke.return_value = AIMessage(content=" A dog \n")

        description = _service_with(llm).describe_image("describe", "data:image/png;base64,AAAA")

        assert description == "A dog"
        assert llm.bind.call_args.kwargs == {"max_tokens": 400}
        message = llm.bind.return_value.invoke.call_args.args[0][0]
        assert message.content[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}

    def test_missing_api_key(self):
        service = LLMService()
        service.settings = service.settings.model_copy(update={"openai_api_key": ""})
        with pytest.raises(ProviderAuthError):
            service.chat([{"role": "user", "content": "hi"}])
