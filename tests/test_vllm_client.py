"""
Testes do VLLMClient.

Usa httpx.MockTransport: nenhuma chamada de rede real.
"""

import json

import httpx
import pytest

from docflow.config import Config
from docflow.llm.exceptions import LLMError, RateLimitError, TransientProviderError
from docflow.llm.vllm_client import ModelResult, VLLMClient, _strip_thinking_block


def chat_response(content, usage=None, model="Qwen/Qwen3-8B-AWQ"):
    body = {
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }
    if usage is not None:
        body["usage"] = usage
    return httpx.Response(200, json=body)


def make_client(handler, config=None):
    config = config or Config()
    http_client = httpx.Client(base_url=config.vllm_base_url, transport=httpx.MockTransport(handler))
    return VLLMClient(config, http_client=http_client)


class TestStripThinking:

    def test_remove_bloco_completo(self):
        assert _strip_thinking_block("<think>pensando...</think>\n{\"a\": 1}") == '{"a": 1}'

    def test_remove_bloco_incompleto(self):
        assert _strip_thinking_block("resposta <think>cortado no meio") == "resposta"


class TestExecute:
    """Chamada /chat/completions."""

    def test_sucesso(self):
        requests = []

        def handler(request):
            requests.append(request)
            return chat_response(
                "<think>raciocinio</think>resultado",
                usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
            )

        client = make_client(handler)
        result = client.execute("Traduza isto", {"max_tokens": 100, "system_prompt": "Voce e um tradutor"})

        assert isinstance(result, ModelResult)
        assert result.content == "resultado"
        assert result.tokens == 15
        assert result.prompt_tokens == 10
        assert result.completion_tokens == 5
        assert result.cost == 0.0

        assert requests[0].url.path.endswith("/chat/completions")
        payload = json.loads(requests[0].content)
        assert payload["max_tokens"] == 100
        assert payload["model"] == "Qwen/Qwen3-8B-AWQ"
        assert payload["messages"][0] == {"role": "system", "content": "Voce e um tradutor"}
        assert payload["messages"][1] == {"role": "user", "content": "Traduza isto"}
        assert "response_format" not in payload

    def test_defaults_do_config(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return chat_response("ok")

        config = Config(vllm_model="modelo-x", default_max_tokens=321, default_temperature=0.3)
        make_client(handler, config).execute("prompt")

        assert captured["model"] == "modelo-x"
        assert captured["max_tokens"] == 321
        assert captured["temperature"] == 0.3
        assert len(captured["messages"]) == 1

    def test_tokens_sem_total(self):
        def handler(request):
            return chat_response("ok", usage={"prompt_tokens": 7, "completion_tokens": 3})

        assert make_client(handler).execute("p").tokens == 10

    def test_response_schema_vira_response_format(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return chat_response('{"sections": []}')

        schema = {"type": "object", "required": ["sections"]}
        make_client(handler).execute("p", {"response_schema": schema, "response_schema_name": "sections"})

        assert captured["response_format"] == {
            "type": "json_schema",
            "json_schema": {"name": "sections", "schema": schema},
        }

    def test_content_nulo_vira_string_vazia(self):
        def handler(request):
            return chat_response(None)

        assert make_client(handler).execute("p").content == ""


class TestMapeamentoDeErros:
    """Falhas HTTP -> taxonomia de excecoes."""

    def test_429_com_retry_after(self):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "7"}, text="too many requests")

        with pytest.raises(RateLimitError) as exc_info:
            make_client(handler).execute("p")

        assert exc_info.value.retry_after == 7.0
        assert exc_info.value.context["provider"] == "vllm"

    def test_429_sem_retry_after(self):
        def handler(request):
            return httpx.Response(429)

        with pytest.raises(RateLimitError) as exc_info:
            make_client(handler).execute("p")

        assert exc_info.value.retry_after is None

    def test_503_e_transiente(self):
        def handler(request):
            return httpx.Response(503, text="overloaded")

        with pytest.raises(TransientProviderError) as exc_info:
            make_client(handler).execute("p")

        assert exc_info.value.context["status_code"] == 503

    def test_400_e_definitivo(self):
        def handler(request):
            return httpx.Response(400, text="bad request")

        with pytest.raises(LLMError) as exc_info:
            make_client(handler).execute("p")

        assert not isinstance(exc_info.value, (RateLimitError, TransientProviderError))
        assert exc_info.value.context["body"] == "bad request"

    def test_timeout_e_transiente(self):
        def handler(request):
            raise httpx.ReadTimeout("timeout", request=request)

        with pytest.raises(TransientProviderError):
            make_client(handler).execute("p")

    def test_erro_de_conexao_e_transiente(self):
        def handler(request):
            raise httpx.ConnectError("recusado", request=request)

        with pytest.raises(TransientProviderError):
            make_client(handler).execute("p")

    def test_resposta_sem_choices(self):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        with pytest.raises(LLMError, match="Resposta inesperada"):
            make_client(handler).execute("p")


class TestHealthCheck:

    def test_servidor_ok(self):
        def handler(request):
            return httpx.Response(200, json={"data": [{"id": "Qwen/Qwen3-8B-AWQ"}]})

        assert make_client(handler).health_check() is True

    def test_servidor_fora(self):
        def handler(request):
            raise httpx.ConnectError("recusado", request=request)

        assert make_client(handler).health_check() is False

    def test_context_manager_fecha_cliente(self):
        client = make_client(lambda request: chat_response("ok"))

        with client as c:
            assert c is client

        assert client._client.is_closed
