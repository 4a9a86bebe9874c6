from __future__ import annotations

import json
from typing import Any, Dict

import httpx
import pytest

pytest.importorskip("openai")
pytest.importorskip("pytest_httpx")

from analysis.classifier.batch import BatchClassifier
from analysis.models.domain import HeadlineInput
from llm.client.openai_client import OpenAIClient, PermanentLLMError, TransientLLMError
from llm.settings import LLMSettings

COMPLETIONS_URL = "https://llm.example.com/v1/chat/completions"

HEADLINES = [
    HeadlineInput(title="Lab reports AGI achieved in internal tests", source="Reddit"),
    HeadlineInput(title="New laptop review", source="RSS"),
]


def _client() -> OpenAIClient:
    return OpenAIClient(
        LLMSettings(
            llm_api_key="sk-test",
            llm_base_url="https://llm.example.com/v1",
            llm_auth_token="proxy-token",
        )
    )


def _completion(content: str | None, choices: bool = True) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1_700_000_000,
        "model": "gpt-4o-mini",
        "choices": [],
        "usage": {"prompt_tokens": 120, "completion_tokens": 60, "total_tokens": 180},
    }
    if choices:
        body["choices"] = [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ]
    return body


def _answer() -> str:
    return json.dumps(
        {
            "items": [
                {
                    "title": HEADLINES[0].title,
                    "analysis": {
                        "relevance": "critical",
                        "agiProbability": 60,
                        "reasoning": "Direct AGI claim",
                        "keyInsights": ["claim"],
                    },
                },
                {
                    "title": HEADLINES[1].title,
                    "analysis": {
                        "relevance": "low",
                        "agiProbability": 1,
                        "reasoning": "Hardware review",
                        "keyInsights": ["laptop"],
                    },
                },
            ],
            "overallAgiDetection": {"detected": True, "confidence": 65, "reasoning": "One direct claim"},
        }
    )


def test_sdk_success_sends_proxy_header(httpx_mock):
    httpx_mock.add_response(url=COMPLETIONS_URL, method="POST", json=_completion(_answer()))

    result, meta = _client().classify_batch(HEADLINES)

    assert result.items[0].analysis.relevance == "critical"
    assert meta.prompt_tokens == 120
    request = httpx_mock.get_request()
    assert request.headers["X-Auth-Token"] == "proxy-token"
    assert json.loads(request.content)["response_format"] == {"type": "json_object"}


def test_sdk_empty_choices_is_permanent(httpx_mock):
    httpx_mock.add_response(url=COMPLETIONS_URL, method="POST", json=_completion(None, choices=False))
    with pytest.raises(PermanentLLMError):
        _client().classify_batch(HEADLINES)


def test_sdk_null_content_is_permanent(httpx_mock):
    httpx_mock.add_response(url=COMPLETIONS_URL, method="POST", json=_completion(None))
    with pytest.raises(PermanentLLMError):
        _client().classify_batch(HEADLINES)


@pytest.mark.parametrize("status", [400, 401, 404, 422])
def test_sdk_client_errors_are_permanent(httpx_mock, status):
    httpx_mock.add_response(
        url=COMPLETIONS_URL, method="POST", status_code=status, json={"error": {"message": "nope"}}
    )
    with pytest.raises(PermanentLLMError):
        _client().classify_batch(HEADLINES)


@pytest.mark.parametrize("status", [429, 500, 503])
def test_sdk_throttling_and_server_errors_are_transient(httpx_mock, status):
    httpx_mock.add_response(
        url=COMPLETIONS_URL, method="POST", status_code=status, json={"error": {"message": "busy"}}
    )
    with pytest.raises(TransientLLMError):
        _client().classify_batch(HEADLINES)


@pytest.mark.parametrize(
    "exc",
    [httpx.ReadTimeout("slow upstream"), httpx.ConnectError("refused")],
)
def test_sdk_network_failures_are_transient(httpx_mock, exc):
    httpx_mock.add_exception(exc, url=COMPLETIONS_URL, method="POST")
    with pytest.raises(TransientLLMError):
        _client().classify_batch(HEADLINES)


@pytest.mark.parametrize(
    "body, content_type",
    [
        (b"upstream hiccup", "text/plain"),
        (b"{not json", "application/json"),
    ],
)
def test_sdk_malformed_body_is_permanent(httpx_mock, body, content_type):
    httpx_mock.add_response(
        url=COMPLETIONS_URL, method="POST", content=body, headers={"content-type": content_type}
    )
    with pytest.raises(PermanentLLMError):
        _client().classify_batch(HEADLINES)


def test_empty_choices_falls_back_to_keywords(httpx_mock):
    httpx_mock.add_response(url=COMPLETIONS_URL, method="POST", json=_completion(None, choices=False))

    outcome = BatchClassifier(_client()).classify(HEADLINES)

    assert outcome.ai_assisted is False
    assert outcome.error
    assert [c.kind for c in outcome.classifications] == ["deterministic", "deterministic"]
    assert outcome.classifications[0].relevance == "critical"
    assert outcome.classifications[1].relevance == "low"
