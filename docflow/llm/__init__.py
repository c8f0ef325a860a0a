"""
Modulo LLM - cliente vLLM, taxonomia de erros e retry.
"""

from .exceptions import ExhaustedRetriesError, LLMError, RateLimitError, TransientProviderError
from .retry_handler import RetryHandler
from .vllm_client import ModelResult, VLLMClient

__all__ = [
    "LLMError",
    "RateLimitError",
    "TransientProviderError",
    "ExhaustedRetriesError",
    "RetryHandler",
    "ModelResult",
    "VLLMClient",
]
