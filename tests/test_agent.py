"""Tests for backlog generation (agent + LLM client)."""

import json

import httpx
import pytest

from agent_backlog import AgentBacklog, ChatMessage, GenerationError, LLMClient

from conftest import make_story


BACKLOG = [{
    "epic": "Checkout",
    "epic_description": "Let customers pay",
    "features": [{
        "feature": "Cart",
        "feature_description": "Manage the cart",
        "user_stories": [make_story("STORY-001"), make_story("STORY-002", ["STORY-001"])],
    }],
}]


class FakeLLM:
    """Returns a canned completion (or raises) and records the prompts."""

    def __init__(self, content: str = "", error: Exception = None):
        self.content = content
        self.error = error
        self.messages = None

    async def acomplete(self, messages, **kwargs):
        self.messages = messages
        if self.error:
            raise self.error
        return {"choices": [{"message": {"content": self.content}}]}


class TestAgentBacklog:
    @pytest.mark.asyncio
    async def test_generate_from_plain_json(self):
        agent = AgentBacklog(FakeLLM(json.dumps(BACKLOG)))

        backlog = await agent.generate("Customers must be able to pay", "Past ticket: PAY-12")

        assert backlog.counts() == {"epics": 1, "features": 1, "user_stories": 2}

    @pytest.mark.asyncio
    async def test_prompt_contains_requirement_and_knowledge_base(self):
        llm = FakeLLM(json.dumps(BACKLOG))

        await AgentBacklog(llm).generate("Customers must be able to pay", "Past ticket: PAY-12")

        assert llm.messages[0].role == "system"
        assert "Customers must be able to pay" in llm.messages[1].content
        assert "Past ticket: PAY-12" in llm.messages[1].content

    @pytest.mark.asyncio
    async def test_missing_knowledge_base_placeholder(self):
        llm = FakeLLM(json.dumps(BACKLOG))

        await AgentBacklog(llm).generate("Pay")

        assert "Aucun contexte supplémentaire" in llm.messages[1].content

    @pytest.mark.asyncio
    async def test_markdown_fences_and_wrapper_object(self):
        content = "Voici le backlog :\n```json\n" + json.dumps({"epics": BACKLOG}) + "\n```"

        backlog = await AgentBacklog(FakeLLM(content)).generate("Pay")

        assert backlog.epics[0].features[0].user_stories[1].dependencies == ["STORY-001"]

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with pytest.raises(GenerationError):
            await AgentBacklog(FakeLLM("[{ not json")).generate("Pay")

    @pytest.mark.asyncio
    async def test_schema_violation(self):
        with pytest.raises(GenerationError):
            await AgentBacklog(FakeLLM(json.dumps([{"features": []}]))).generate("Pay")

    @pytest.mark.asyncio
    async def test_empty_backlog(self):
        with pytest.raises(GenerationError):
            await AgentBacklog(FakeLLM("[]")).generate("Pay")

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        llm = FakeLLM(error=httpx.ConnectError("refused"))

        with pytest.raises(GenerationError) as exc:
            await AgentBacklog(llm).generate("Pay")

        assert isinstance(exc.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_empty_requirement(self):
        with pytest.raises(ValueError):
            await AgentBacklog(FakeLLM("[]")).generate("   ")


class TestLLMClient:
    @pytest.mark.asyncio
    async def test_ollama_response_normalised(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "[]"}})

        client = LLMClient(
            provider="ollama", api_base="http://ollama:11434/", model="mistral", timeout=5.0,
            transport=httpx.MockTransport(handler),
        )

        result = await client.acomplete([ChatMessage(role="user", content="hi")])

        assert result["choices"][0]["message"]["content"] == "[]"
        assert seen["url"] == "http://ollama:11434/api/chat"
        assert seen["payload"]["stream"] is False

    @pytest.mark.asyncio
    async def test_openai_compatible(self):
        def handler(request):
            assert request.headers["Authorization"] == "Bearer k"
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        client = LLMClient(
            provider="openai", api_base="http://llm", api_key="k", timeout=5.0,
            transport=httpx.MockTransport(handler),
        )

        result = await client.acomplete([ChatMessage(role="user", content="hi")])

        assert result["choices"][0]["message"]["content"] == "ok"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            LLMClient(provider="gemini")

    def test_mistral_requires_key(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        with pytest.raises(ValueError):
            LLMClient(provider="mistral")
