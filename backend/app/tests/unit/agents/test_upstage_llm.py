"""Test the Upstage completion gateway."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from tutor.agents.llm.base_llm import NO_RESPONSE_PLACEHOLDER, EchoLLM
from tutor.agents.llm.upstage_llm import UpstageLLM, get_llm
from tutor.configs import Settings
from tutor.errors import CompletionFailedError


def _client_returning(content) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


def test_complete_sends_system_and_history_then_final_line() -> None:
    client = _client_returning("setup.gs부터 만들어요.")
    llm = UpstageLLM(model="solar-pro2", temperature=0.2, client=client)

    reply = llm.complete("시스템", ["학생: 안녕", "도우미: 반가워요"], "새 질문: 게임 만들래요")

    assert reply == "setup.gs부터 만들어요."
    client.chat.completions.create.assert_called_once_with(
        model="solar-pro2",
        messages=[
            {"role": "system", "content": "시스템"},
            {
                "role": "user",
                "content": "최근 대화\n학생: 안녕\n도우미: 반가워요\n\n새 질문: 게임 만들래요",
            },
        ],
        temperature=0.2,
    )


def test_temperature_override() -> None:
    client = _client_returning("ok")
    llm = UpstageLLM(temperature=0.2, client=client)

    llm.complete("시스템", [], "요약해줘", temperature=0.0)

    assert client.chat.completions.create.call_args.kwargs["temperature"] == 0.0


@pytest.mark.parametrize("content", [None, "", "  \n "])
def test_empty_completion_becomes_placeholder(content) -> None:
    llm = UpstageLLM(client=_client_returning(content))

    assert llm.complete("시스템", [], "질문") == NO_RESPONSE_PLACEHOLDER
    assert llm.complete("시스템", [], "질문", placeholder="(요약 없음)") == "(요약 없음)"


def test_provider_error_is_completion_failed() -> None:
    client = MagicMock()
    request = httpx.Request("POST", "https://api.upstage.ai/v1/chat/completions")
    client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)
    llm = UpstageLLM(client=client)

    with pytest.raises(CompletionFailedError) as excinfo:
        llm.complete("시스템", [], "질문")

    assert excinfo.value.status_code == 502
    assert excinfo.value.detail


def test_get_llm_without_key_falls_back_to_echo() -> None:
    llm = get_llm(Settings(UPSTAGE_API_KEY=None))

    assert isinstance(llm, EchoLLM)
    assert llm.complete("시스템", [], "새 질문: 안녕") == "[EchoLLM] 새 질문: 안녕"


def test_get_llm_with_key_uses_configured_model() -> None:
    llm = get_llm(
        Settings(UPSTAGE_API_KEY="up-test", UPSTAGE_MODEL="solar-mini", COMPLETION_TEMPERATURE=0.5)
    )

    assert isinstance(llm, UpstageLLM)
    assert llm.model == "solar-mini"
    assert llm.temperature == 0.5
