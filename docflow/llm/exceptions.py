"""
Excecoes do provedor LLM.

O RetryHandler decide o que repetir pelo tipo:
- RateLimitError: sempre retentavel (padrao)
- TransientProviderError: retentavel quando o chamador pede
- LLMError: erro definitivo do provedor
- ExhaustedRetriesError: tentativas esgotadas com erro que nao era LLMError
"""

from typing import Optional

from ..exceptions import DocflowError


class LLMError(DocflowError):
    """Erro base do provedor LLM."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.context = context or {}


class RateLimitError(LLMError):
    """HTTP 429 / limite de requisicoes ou tokens."""

    def __init__(self, message: str, retry_after: Optional[float] = None, context: Optional[dict] = None):
        context = dict(context or {})
        context.setdefault("retry_after", retry_after)
        super().__init__(message, context)
        self.retry_after = retry_after

    @classmethod
    def from_headers(cls, provider: str, headers) -> "RateLimitError":
        raw = headers.get("retry-after") if headers else None
        retry_after = None
        if raw is not None:
            try:
                retry_after = float(raw)
            except (TypeError, ValueError):
                retry_after = None

        message = f"Rate limit excedido em {provider}"
        if retry_after is not None:
            message += f". Tentar novamente em {retry_after:g}s"

        return cls(message, retry_after=retry_after, context={"provider": provider})


class TransientProviderError(LLMError):
    """Timeout, erro de transporte ou 5xx."""
    pass


class ExhaustedRetriesError(LLMError):
    """Todas as tentativas falharam."""

    def __init__(self, message: str, attempts: int, context: Optional[dict] = None):
        super().__init__(message, context)
        self.attempts = attempts
