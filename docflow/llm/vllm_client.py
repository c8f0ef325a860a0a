"""
Cliente vLLM com API OpenAI-compatible.

Contrato usado pelo DocumentProcessor:

    client.execute(prompt, options) -> ModelResult(content, tokens, cost)

O cliente NAO faz retry: traduz falhas HTTP para a taxonomia de
docflow.llm.exceptions e deixa a politica para o RetryHandler.

| Falha                          | Excecao                 |
|--------------------------------|-------------------------|
| HTTP 429                       | RateLimitError          |
| HTTP 5xx, timeout, transporte  | TransientProviderError  |
| Outros HTTP / resposta quebrada| LLMError                |

Uso:
    with VLLMClient() as client:
        result = client.execute("Traduza...", {"max_tokens": 2000})
        print(result.content)
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import Config, config as default_config
from .exceptions import LLMError, RateLimitError, TransientProviderError

logger = logging.getLogger(__name__)


def _strip_thinking_block(text: str) -> str:
    """Remove bloco <think>...</think> da resposta do Qwen 3 (inclusive incompleto)."""
    text = re.sub(r"<think>[\s\S]*?</think>\s*", "", text)
    text = re.sub(r"<think>[\s\S]*$", "", text)
    return text.strip()


@dataclass
class ModelResult:
    """Resposta do modelo com metricas."""

    content: str
    tokens: int = 0
    cost: float = 0.0  # vLLM local nao tem custo por token
    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "tokens": self.tokens,
            "cost": self.cost,
            "model": self.model,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }


class VLLMClient:
    """
    Cliente para vLLM.

    Options aceitas em execute():
        model, max_tokens, temperature, system_prompt, response_schema
        (dict JSON Schema -> response_format json_schema)
    """

    def __init__(self, config: Optional[Config] = None, http_client: Optional[httpx.Client] = None):
        self.config = config or default_config
        self._client = http_client or httpx.Client(
            base_url=self.config.vllm_base_url,
            timeout=self.config.vllm_timeout,
            headers={
                "Authorization": "Bearer not-needed",
                "Content-Type": "application/json",
            },
        )
        logger.info(f"VLLMClient inicializado: {self.config.vllm_base_url}")

    def execute(self, prompt: str, options: Optional[dict] = None) -> ModelResult:
        options = options or {}
        model = options.get("model") or self.config.vllm_model

        messages = []
        if options.get("system_prompt"):
            messages.append({"role": "system", "content": options["system_prompt"]})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": options.get("temperature", self.config.default_temperature),
            "max_tokens": options.get("max_tokens") or self.config.default_max_tokens,
        }

        if options.get("response_schema"):
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": options.get("response_schema_name", "response_schema"),
                    "schema": options["response_schema"],
                },
            }

        start_time = time.time()

        try:
            response = self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._map_status_error(e) from e
        except httpx.TimeoutException as e:
            raise TransientProviderError(f"Timeout no vLLM: {e}", {"model": model}) from e
        except httpx.TransportError as e:
            raise TransientProviderError(f"Erro de transporte no vLLM: {e}", {"model": model}) from e

        elapsed = time.time() - start_time

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Resposta inesperada do vLLM: {e}", {"model": model}) from e

        content = _strip_thinking_block(content)

        usage = data.get("usage") or {}
        prompt_tokens = usage.get("prompt_tokens", 0)
        completion_tokens = usage.get("completion_tokens", 0)

        logger.debug(
            f"LLM response: {elapsed:.2f}s, model={model}, "
            f"prompt_tokens={prompt_tokens}, completion_tokens={completion_tokens}"
        )

        return ModelResult(
            content=content,
            tokens=usage.get("total_tokens", prompt_tokens + completion_tokens),
            model=data.get("model", model),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            elapsed_seconds=elapsed,
        )

    @staticmethod
    def _map_status_error(error: httpx.HTTPStatusError) -> LLMError:
        status = error.response.status_code
        context = {"status_code": status, "body": error.response.text[:500]}

        if status == 429:
            return RateLimitError.from_headers("vllm", error.response.headers)
        if status >= 500:
            return TransientProviderError(f"vLLM retornou HTTP {status}", context)
        return LLMError(f"vLLM retornou HTTP {status}", context)

    def health_check(self) -> bool:
        """Verifica se o servidor esta respondendo."""
        try:
            response = self._client.get("/models")
            response.raise_for_status()
            return bool(response.json().get("data"))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Health check do vLLM falhou: {e}")
            return False

    def close(self):
        """Fecha o cliente HTTP."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self) -> str:
        return f"VLLMClient(url={self.config.vllm_base_url!r}, model={self.config.vllm_model!r})"
