from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from vibe_check.clients.llm import ModelInvoker, OpenRouterClient, _strip_fences
from vibe_check.errors import ModelInvocationError
from vibe_check.models.config import ScanConfig
from vibe_check.models.schemas import InsightResponse

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _status_error(code: int) -> APIStatusError:
    response = httpx.Response(code, request=_REQUEST)
    return APIStatusError(f"HTTP {code}", response=response, body=None)


class FakeCompletions:
    def __init__(self, outcomes: list[Any]) -> None:
        self.outcomes = outcomes
        self.requests: list[dict[str, Any]] = []

    def create(self, **params: Any) -> Any:
        self.requests.append(params)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _client(scan_config: ScanConfig, *outcomes: Any, **kwargs: Any) -> tuple[OpenRouterClient, FakeCompletions, list[float]]:
    completions = FakeCompletions(list(outcomes))
    fake_openai = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    sleeps: list[float] = []
    client = OpenRouterClient(scan_config, client=fake_openai, sleep=sleeps.append, **kwargs)  # type: ignore[arg-type]
    return client, completions, sleeps


def test_client_satisfies_invoker_protocol(scan_config: ScanConfig):
    client, _, _ = _client(scan_config)

    assert isinstance(client, ModelInvoker)


def test_invoke_parses_json_and_sends_schema(scan_config: ScanConfig):
    body = {"insight": "ok", "risk_assessment": {"overall_risk": "low", "priority_areas": []}}
    client, completions, _ = _client(scan_config, _completion(json.dumps(body)))

    result = client.invoke("describe the posture", InsightResponse)

    assert result == body
    request = completions.requests[0]
    assert request["model"] == scan_config.model
    assert request["response_format"]["json_schema"]["name"] == "InsightResponse_v1"
    assert request["messages"][-1] == {"role": "user", "content": "describe the posture"}


def test_invoke_strips_markdown_fences(scan_config: ScanConfig):
    client, _, _ = _client(scan_config, _completion('```json\n{"insight": "x"}\n```'))

    assert client.invoke("p", InsightResponse) == {"insight": "x"}


def test_retries_transient_failures(scan_config: ScanConfig):
    client, completions, sleeps = _client(
        scan_config,
        _status_error(429),
        APIConnectionError(request=_REQUEST),
        _completion("{}"),
        initial_delay=1.0,
    )

    assert client.invoke("p", InsightResponse) == {}
    assert len(completions.requests) == 3
    assert sleeps == pytest.approx([1.0, 1.7])


def test_gives_up_after_max_attempts(scan_config: ScanConfig):
    client, completions, _ = _client(
        scan_config, _status_error(503), _status_error(503), max_attempts=2
    )

    with pytest.raises(ModelInvocationError) as excinfo:
        client.invoke("p", InsightResponse)

    assert excinfo.value.status_code == 503
    assert len(completions.requests) == 2


def test_client_errors_are_not_retried(scan_config: ScanConfig):
    client, completions, sleeps = _client(scan_config, _status_error(401))

    with pytest.raises(ModelInvocationError) as excinfo:
        client.invoke("p", InsightResponse)

    assert excinfo.value.status_code == 401
    assert len(completions.requests) == 1
    assert sleeps == []


@pytest.mark.parametrize(
    "response",
    [_completion("I found some issues, here they are!"), _completion(""), SimpleNamespace(choices=[])],
)
def test_unusable_responses_fail(scan_config: ScanConfig, response: Any):
    client, _, _ = _client(scan_config, response)

    with pytest.raises(ModelInvocationError):
        client.invoke("p", InsightResponse)


def test_strip_fences_leaves_plain_json():
    assert _strip_fences('  {"a": 1}  ') == '{"a": 1}'
