import anthropic
import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from intervai.agents.question_writer import QuestionWriter, build_prompt, classify_upstream_error
from intervai.errors import (
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamServiceError,
    UpstreamUnavailableError,
)

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status):
    return cls("upstream said no", response=httpx.Response(status, request=REQUEST), body=None)


class FakeChatModel:
    def __init__(self, outcome):
        self.outcome = outcome
        self.messages = None

    async def ainvoke(self, messages):
        self.messages = messages
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_prompt_names_role_experience_and_topics():
    prompt = build_prompt("SRE", "senior", ["kubernetes", "linux"], count=5)
    assert "exactly 5 interview questions" in prompt
    assert "Role: SRE" in prompt
    assert "Experience: senior" in prompt
    assert "Topics: kubernetes, linux" in prompt
    assert '[{"question": "...", "answer": "..."}]' in prompt


@pytest.mark.anyio
async def test_write_returns_text(app_config):
    llm = FakeChatModel(AIMessage(content='[{"question": "Q?", "answer": "A."}]'))
    writer = QuestionWriter(app_config, llm=llm)

    text = await writer.write("SRE", "senior", ["linux"])

    assert text.startswith("[")
    assert isinstance(llm.messages[0], SystemMessage)
    assert isinstance(llm.messages[1], HumanMessage)
    assert "Role: SRE" in llm.messages[1].content


@pytest.mark.anyio
async def test_write_joins_content_blocks(app_config):
    llm = FakeChatModel(AIMessage(content=[{"type": "text", "text": "[1,"}, {"type": "text", "text": "2]"}]))
    assert await QuestionWriter(app_config, llm=llm).write("SRE", "senior", ["linux"]) == "[1,2]"


@pytest.mark.anyio
async def test_write_maps_sdk_errors(app_config):
    llm = FakeChatModel(_status_error(anthropic.RateLimitError, 429))

    with pytest.raises(UpstreamRateLimitError) as info:
        await QuestionWriter(app_config, llm=llm).write("SRE", "senior", ["linux"])

    assert isinstance(info.value.__cause__, anthropic.RateLimitError)


@pytest.mark.parametrize("error,expected", [
    (_status_error(anthropic.AuthenticationError, 401), UpstreamAuthError),
    (_status_error(anthropic.RateLimitError, 429), UpstreamRateLimitError),
    (_status_error(anthropic.InternalServerError, 500), UpstreamUnavailableError),
    (anthropic.APIConnectionError(request=REQUEST), UpstreamUnavailableError),
    (anthropic.APITimeoutError(request=REQUEST), UpstreamUnavailableError),
    (_status_error(anthropic.BadRequestError, 400), UpstreamServiceError),
])
def test_classify_upstream_error(error, expected):
    mapped = classify_upstream_error(error)
    assert type(mapped) is expected


def test_classify_ignores_other_errors():
    assert classify_upstream_error(ValueError("nope")) is None
