"""
Test Suite for Provider Adapters

Tests the three-stage request chain, per-provider wire formats and the
conversion of failures into error-shaped responses. HTTP is mocked at
BaseProvider._post_json.
"""

import asyncio
import json
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from visibility.config import Provider
from visibility.exceptions import ConfigurationError, ProviderAPIError
from visibility.models import AdditionalQuestionAnswer, Sentiment
from visibility.providers import (
    AzureOpenAIProvider,
    GeminiProvider,
    OpenAIProvider,
    PerplexityProvider,
    create_provider,
)
from visibility.providers.base import api_error_message
from visibility.providers.chat import message_content
from visibility.providers.gemini import BRAND_ANALYSIS_SCHEMA, candidate_text


RAW_TEXT = "Acme is the best CRM. Globex is fine. Hooli is also popular."

BRANDS = {
    "brands": [
        {"brandName": "Acme", "mentions": 1, "sentiment": "Positive"},
        {"brandName": "Globex", "mentions": 1, "sentiment": "Neutral"},
        {"brandName": "Initech", "mentions": 0, "sentiment": "Not Mentioned"},
        {"brandName": "Hooli", "mentions": 1, "sentiment": "Positive"},
    ]
}


def chat_reply(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def gemini_reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def sent_content(mock_post, call_index):
    payload = mock_post.call_args_list[call_index].args[1]
    return payload["messages"][0]["content"]


# ============================================================================
# Provider construction
# ============================================================================

class TestCreateProvider:
    @pytest.mark.parametrize(
        "provider, cls",
        [
            (Provider.GEMINI, GeminiProvider),
            (Provider.OPENAI, OpenAIProvider),
            (Provider.PERPLEXITY, PerplexityProvider),
            (Provider.COPILOT, AzureOpenAIProvider),
        ],
    )
    def test_dispatches_every_provider(self, config, provider, cls):
        adapter = create_provider(provider, config)
        assert isinstance(adapter, cls)
        assert adapter.provider is provider

    def test_binds_credentials_and_model(self, make_config):
        config = make_config(models={Provider.OPENAI: "gpt-4o"}, request_timeout=30.0)
        adapter = create_provider(Provider.OPENAI, config)

        assert adapter.api_key == "sk-test-key"
        assert adapter.model == "gpt-4o"
        assert adapter.request_timeout == 30.0

    def test_missing_key_raises(self, make_config, api_keys):
        config = make_config(api_keys=replace(api_keys, perplexity=""))
        with pytest.raises(ConfigurationError, match="Perplexity API key is missing"):
            create_provider(Provider.PERPLEXITY, config)

    def test_missing_model_raises(self, make_config):
        config = make_config(models={})
        with pytest.raises(ConfigurationError, match="Google Gemini model is missing"):
            create_provider(Provider.GEMINI, config)

    def test_copilot_requires_endpoint(self, make_config, api_keys):
        config = make_config(api_keys=replace(api_keys, copilot_endpoint=""))
        with pytest.raises(ConfigurationError, match="endpoint"):
            create_provider(Provider.COPILOT, config)


# ============================================================================
# The request chain (shared BaseProvider behavior, exercised via OpenAI)
# ============================================================================

class TestRequestChain:
    @pytest.fixture
    def adapter(self):
        return OpenAIProvider(api_key="sk-test-key", model="gpt-4o-mini")

    @pytest.mark.asyncio
    async def test_successful_chain(self, adapter, make_config):
        config = make_config(additional_questions=["Which is best?", "Is pricing mentioned?"])

        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                chat_reply(RAW_TEXT),
                chat_reply(json.dumps(BRANDS)),
                chat_reply("Acme."),
                chat_reply("The text does not mention pricing."),
            ]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert response.error is None
        assert response.provider is Provider.OPENAI
        assert response.response == RAW_TEXT
        assert [b.brand_name for b in response.brand_analyses] == ["Acme", "Globex", "Initech", "Hooli"]
        assert response.brand_analyses[2].sentiment is Sentiment.NOT_MENTIONED
        assert response.additional_answers == (
            AdditionalQuestionAnswer("Which is best?", "Acme."),
            AdditionalQuestionAnswer("Is pricing mentioned?", "The text does not mention pricing."),
        )
        assert mock_post.await_count == 4

    @pytest.mark.asyncio
    async def test_raw_prompt_sent_verbatim(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(RAW_TEXT), chat_reply(json.dumps(BRANDS))]
            await adapter.execute_for_prompt("  Best CRM?\n", config)

        assert sent_content(mock_post, 0) == "  Best CRM?\n"

    @pytest.mark.asyncio
    async def test_extraction_prompt_embeds_text_and_brands(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(RAW_TEXT), chat_reply(json.dumps(BRANDS))]
            await adapter.execute_for_prompt("Best CRM?", config)

        analysis_prompt = sent_content(mock_post, 1)
        assert RAW_TEXT in analysis_prompt
        assert "Acme, Globex, Initech" in analysis_prompt
        assert "Not Mentioned" in analysis_prompt

    @pytest.mark.asyncio
    async def test_no_questions_skips_answer_stage(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(RAW_TEXT), chat_reply(json.dumps(BRANDS))]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert mock_post.await_count == 2
        assert response.additional_answers == ()

    @pytest.mark.asyncio
    async def test_question_prompt_limits_answer_to_text(self, adapter, make_config):
        config = make_config(additional_questions=["Who is cheapest?"])

        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                chat_reply(RAW_TEXT),
                chat_reply(json.dumps(BRANDS)),
                chat_reply("Not stated."),
            ]
            await adapter.execute_for_prompt("Best CRM?", config)

        question_prompt = sent_content(mock_post, 2)
        assert 'answer the question: "Who is cheapest?"' in question_prompt
        assert "Based ONLY on the text" in question_prompt
        assert RAW_TEXT in question_prompt

    @pytest.mark.asyncio
    async def test_answers_keep_question_order_when_completed_out_of_order(self, adapter, make_config):
        questions = ["slow question", "medium question", "fast question"]
        config = make_config(additional_questions=questions)
        delays = {"slow question": 0.06, "medium question": 0.03, "fast question": 0.0}
        completed = []

        async def fake_post(url, payload):
            content = payload["messages"][0]["content"]
            if content == "Best CRM?":
                return chat_reply(RAW_TEXT)
            if "response_format" in payload:
                return chat_reply(json.dumps(BRANDS))
            question = next(q for q in questions if f'"{q}"' in content)
            await asyncio.sleep(delays[question])
            completed.append(question)
            return chat_reply(f"answer to {question}")

        with patch.object(adapter, "_post_json", side_effect=fake_post):
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert completed == ["fast question", "medium question", "slow question"]
        assert [a.question for a in response.additional_answers] == questions
        assert [a.answer for a in response.additional_answers] == [f"answer to {q}" for q in questions]


# ============================================================================
# Failure shapes
# ============================================================================

class TestFailures:
    @pytest.fixture
    def adapter(self):
        return OpenAIProvider(api_key="sk-test-key", model="gpt-4o-mini")

    def assert_error_shaped(self, response):
        assert response.error
        assert response.response == ""
        assert response.brand_analyses == ()
        assert response.additional_answers == ()

    @pytest.mark.asyncio
    async def test_raw_completion_failure(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = ProviderAPIError("API Error (429): Rate limit reached", status=429)
            response = await adapter.execute_for_prompt("Best CRM?", config)

        self.assert_error_shaped(response)
        assert response.error == "API Error (429): Rate limit reached"
        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_malformed_extraction_discards_raw_text(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(RAW_TEXT), chat_reply("Sorry, I can't do that.")]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        self.assert_error_shaped(response)
        assert "Invalid brand analysis JSON" in response.error

    @pytest.mark.asyncio
    async def test_one_failing_question_fails_the_chain(self, adapter, make_config):
        config = make_config(additional_questions=["q1", "q2"])

        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                chat_reply(RAW_TEXT),
                chat_reply(json.dumps(BRANDS)),
                chat_reply("fine"),
                ProviderAPIError("API Error (500): Internal error", status=500),
            ]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        self.assert_error_shaped(response)
        assert response.error == "API Error (500): Internal error"

    @pytest.mark.asyncio
    async def test_unexpected_reply_shape(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = {"unexpected": True}
            response = await adapter.execute_for_prompt("Best CRM?", config)

        self.assert_error_shaped(response)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "  \n"])
    async def test_empty_raw_reply_is_an_error(self, adapter, config, content):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(content), chat_reply(json.dumps({"brands": []}))]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        self.assert_error_shaped(response)
        assert response.error == "OpenAI returned an empty reply"
        assert mock_post.await_count == 1

    @pytest.mark.asyncio
    async def test_exception_without_message_gets_default(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = RuntimeError()
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert response.error == "An unknown OpenAI error occurred."

    @pytest.mark.asyncio
    async def test_missing_credentials_raise_before_any_call(self, config):
        adapter = OpenAIProvider(api_key="", model="gpt-4o-mini")

        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            with pytest.raises(ConfigurationError):
                await adapter.execute_for_prompt("Best CRM?", config)

        mock_post.assert_not_awaited()


# ============================================================================
# Per-provider wire formats
# ============================================================================

class TestOpenAI:
    def test_headers_use_bearer_token(self):
        adapter = OpenAIProvider(api_key="sk-test-key", model="gpt-4o-mini")
        assert adapter._get_headers()["Authorization"] == "Bearer sk-test-key"

    @pytest.mark.asyncio
    async def test_extraction_requests_json_mode(self):
        adapter = OpenAIProvider(api_key="sk-test-key", model="gpt-4o-mini")

        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = chat_reply(json.dumps(BRANDS))
            await adapter.extract_brands(RAW_TEXT, ["Acme"])

        url, payload = mock_post.call_args.args
        assert url == "https://api.openai.com/v1/chat/completions"
        assert payload["model"] == "gpt-4o-mini"
        assert payload["response_format"] == {"type": "json_object"}


class TestPerplexity:
    @pytest.fixture
    def adapter(self):
        return PerplexityProvider(api_key="pplx-test-key", model="sonar")

    @pytest.mark.asyncio
    async def test_brands_read_from_fenced_block(self, adapter, config):
        fenced = f"Sure!\n```json\n{json.dumps(BRANDS)}\n```\nHope this helps."

        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(RAW_TEXT), chat_reply(fenced)]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert response.error is None
        assert len(response.brand_analyses) == 4

        url, payload = mock_post.call_args_list[1].args
        assert url == "https://api.perplexity.ai/chat/completions"
        assert "response_format" not in payload
        assert "```json" in payload["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_reply_without_json_block_is_an_error(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                chat_reply(RAW_TEXT),
                chat_reply('Acme: 1 mention, positive. {"brands": []}'),
            ]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert response.error
        assert response.response == ""
        assert response.brand_analyses == ()


class TestAzure:
    @pytest.fixture
    def adapter(self):
        return AzureOpenAIProvider(
            api_key="az-test-key",
            endpoint="https://acme.openai.azure.com/",
            deployment="gpt-4o-deployment",
        )

    def test_url_templates_endpoint_and_deployment(self, adapter):
        assert adapter._chat_url() == (
            "https://acme.openai.azure.com/openai/deployments/gpt-4o-deployment"
            "/chat/completions?api-version=2024-02-01"
        )

    def test_headers_use_api_key(self, adapter):
        headers = adapter._get_headers()
        assert headers["api-key"] == "az-test-key"
        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_payload_has_no_model(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [chat_reply(RAW_TEXT), chat_reply(json.dumps(BRANDS))]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert response.provider is Provider.COPILOT
        raw_payload = mock_post.call_args_list[0].args[1]
        analysis_payload = mock_post.call_args_list[1].args[1]
        assert "model" not in raw_payload
        assert analysis_payload["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_blank_endpoint_raises(self, config):
        adapter = AzureOpenAIProvider(api_key="az-test-key", endpoint="", deployment="gpt-4o")
        with pytest.raises(ConfigurationError):
            await adapter.execute_for_prompt("Best CRM?", config)


class TestGemini:
    @pytest.fixture
    def adapter(self):
        return GeminiProvider(api_key="gm-test-key", model="gemini-2.5-flash")

    def test_headers_use_goog_api_key(self, adapter):
        assert adapter._get_headers()["x-goog-api-key"] == "gm-test-key"

    @pytest.mark.asyncio
    async def test_chain_uses_schema_constrained_extraction(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                gemini_reply(RAW_TEXT),
                gemini_reply(json.dumps(BRANDS["brands"])),
            ]
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert response.error is None
        assert response.response == RAW_TEXT
        assert response.brand_analyses[0].brand_name == "Acme"

        url, raw_payload = mock_post.call_args_list[0].args
        assert url.endswith("/models/gemini-2.5-flash:generateContent")
        assert raw_payload == {"contents": [{"role": "user", "parts": [{"text": "Best CRM?"}]}]}

        analysis_payload = mock_post.call_args_list[1].args[1]
        generation_config = analysis_payload["generationConfig"]
        assert generation_config["responseMimeType"] == "application/json"
        assert generation_config["responseSchema"] == BRAND_ANALYSIS_SCHEMA

    def test_schema_restricts_sentiment(self):
        sentiment = BRAND_ANALYSIS_SCHEMA["items"]["properties"]["sentiment"]
        assert sentiment["enum"] == ["Positive", "Neutral", "Negative", "Not Mentioned"]

    def test_candidate_text_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]}
        assert candidate_text(data) == "Hello world"

    @pytest.mark.asyncio
    async def test_blocked_prompt_is_an_error(self, adapter, config):
        with patch.object(adapter, "_post_json", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = {"promptFeedback": {"blockReason": "SAFETY"}}
            response = await adapter.execute_for_prompt("Best CRM?", config)

        assert "SAFETY" in response.error
        assert response.response == ""


# ============================================================================
# Helpers
# ============================================================================

class TestHelpers:
    def test_message_content_null_is_empty_text(self):
        assert message_content(chat_reply(None)) == ""

    @pytest.mark.asyncio
    async def test_api_error_message_prefers_body(self):
        response = MagicMock(status=401, reason="Unauthorized")
        response.json = AsyncMock(return_value={"error": {"message": "Incorrect API key provided"}})

        assert await api_error_message(response) == "API Error (401): Incorrect API key provided"

    @pytest.mark.asyncio
    async def test_api_error_message_falls_back_to_reason(self):
        response = MagicMock(status=503, reason="Service Unavailable")
        response.json = AsyncMock(side_effect=ValueError("no json"))

        assert await api_error_message(response) == "API Error (503): Service Unavailable"
