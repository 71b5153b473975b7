"""
Tests for the command-line interface.
"""

import random

from click.testing import CliRunner

from conftest import FakeStreamingResponse, FakeTransport, chunk_line, json_response, sse
from mistralex import Mistral
from mistralex.cli import main


def _invoke(args, transport):
    def factory(api_key=None, base_url=None):
        return Mistral(
            api_key=api_key or "cli-key",
            base_url=base_url,
            transport=transport,
            sleep=lambda s: None,
            rng=random.Random(0),
        )

    return CliRunner().invoke(main, args, obj={"client_factory": factory})


def test_models_list():
    transport = FakeTransport(
        [json_response(200, {"object": "list", "data": [{"id": "mistral-small-latest"}, {"id": "codestral-latest"}]})]
    )

    result = _invoke(["models", "list"], transport)

    assert result.exit_code == 0
    assert "mistral-small-latest" in result.output
    assert "codestral-latest" in result.output


def test_models_get():
    transport = FakeTransport(
        [
            json_response(
                200,
                {
                    "id": "mistral-small-latest",
                    "owned_by": "mistralai",
                    "max_context_length": 32768,
                    "capabilities": {"completion_chat": True},
                },
            )
        ]
    )

    result = _invoke(["models", "get", "mistral-small-latest"], transport)

    assert result.exit_code == 0
    assert "Context length: 32768" in result.output
    assert "completion_chat" in result.output


def test_chat_no_stream():
    transport = FakeTransport(
        [
            json_response(
                200,
                {
                    "id": "c",
                    "model": "mistral-small-latest",
                    "choices": [{"index": 0, "message": {"role": "assistant", "content": "Salut"}}],
                },
            )
        ]
    )

    result = _invoke(["chat", "--no-stream", "Say hi"], transport)

    assert result.exit_code == 0
    assert "Salut" in result.output
    assert transport.calls[0].json()["messages"] == [{"role": "user", "content": "Say hi"}]


def test_chat_stream():
    frames = sse(chunk_line("Sa"), chunk_line("lut"), "data: [DONE]")
    transport = FakeTransport(streams=[FakeStreamingResponse(200, frames)])

    result = _invoke(["chat", "Say hi"], transport)

    assert result.exit_code == 0
    assert "Salut" in result.output


def test_embed():
    transport = FakeTransport(
        [json_response(200, {"model": "mistral-embed", "data": [{"embedding": [0.5, 0.25], "index": 0}]})]
    )

    result = _invoke(["embed", "hello"], transport)

    assert result.exit_code == 0
    assert "Embedding dimension: 2" in result.output


def test_moderate():
    transport = FakeTransport(
        [
            json_response(
                200,
                {"id": "m", "model": "mistral-moderation-latest", "results": [{"categories": {"pii": True, "hate": False}}]},
            )
        ]
    )

    result = _invoke(["moderate", "my number is 555-0100"], transport)

    assert result.exit_code == 0
    assert "Flagged: pii" in result.output


def test_api_error_exits_with_message():
    transport = FakeTransport([json_response(401, {"message": "Unauthorized"})])

    result = _invoke(["models", "list"], transport)

    assert result.exit_code == 1
    assert "Error: [401] Unauthorized" in result.output


def test_missing_api_key():
    result = CliRunner().invoke(main, ["models", "list"])

    assert result.exit_code == 1
    assert "MISTRAL_API_KEY" in result.output
