"""
RetryHandler - Backoff exponencial para chamadas externas.

    tentativa 1 ── falha retentavel ── espera ── tentativa 2 ── ... ── max_attempts

Espera:
    retry_after do provedor (limitado a max_delay), ou
    base * multiplier^(attempt-1) + jitter uniforme de ate 10%, limitado a max_delay

A espera bloqueia a thread chamadora. sleep e rng sao injetaveis para testes.
"""

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from ..config import Config, config as default_config
from .exceptions import ExhaustedRetriesError, LLMError, RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.1


class RetryHandler:
    """
    Executa uma operacao com retry.

    Usage:
        handler = RetryHandler.for_llm_operations()
        result = handler.execute(
            lambda: client.execute(prompt, options),
            retryable=(RateLimitError, TransientProviderError),
            operation_name="traducao",
        )
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        backoff_multiplier: float = 2.0,
        max_delay: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[float, float], float] = random.uniform,
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_delay = max_delay
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def for_llm_operations(cls, config: Optional[Config] = None) -> "RetryHandler":
        config = config or default_config
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            backoff_multiplier=config.retry_backoff_multiplier,
            max_delay=config.retry_max_delay,
        )

    def execute(
        self,
        operation: Callable[[], T],
        retryable: tuple = (RateLimitError,),
        operation_name: str = "LLM operation",
    ) -> T:
        """
        Executa operation() ate dar certo ou esgotar as tentativas.

        Raises:
            LLMError: a ultima falha, se ja for LLMError
            ExhaustedRetriesError: a ultima falha embrulhada, caso contrario
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug(f"Executando {operation_name} (tentativa {attempt}/{self.max_attempts})")
                return operation()

            except Exception as e:
                last_error = e
                will_retry = attempt < self.max_attempts and isinstance(e, retryable)

                logger.warning(
                    f"Tentativa {attempt}/{self.max_attempts} falhou em {operation_name}: "
                    f"{type(e).__name__}: {e} (retry={will_retry})"
                )

                if not will_retry:
                    break

                delay = self.calculate_delay(attempt, e)
                logger.info(f"Repetindo {operation_name} em {delay:.2f}s")
                self._sleep(delay)

        logger.error(f"{operation_name} falhou apos {attempt} tentativa(s): {last_error}")

        if isinstance(last_error, LLMError):
            raise last_error

        raise ExhaustedRetriesError(
            f"{operation_name} falhou apos {attempt} tentativa(s): {last_error}",
            attempts=attempt,
            context={"exception_class": type(last_error).__name__},
        ) from last_error

    def calculate_delay(self, attempt: int, error: Optional[Exception] = None) -> float:
        """Espera antes da proxima tentativa (attempt e 1-based)."""
        retry_after = getattr(error, "retry_after", None) if isinstance(error, RateLimitError) else None
        if retry_after:
            return min(float(retry_after), self.max_delay)

        delay = self.base_delay * (self.backoff_multiplier ** (attempt - 1))
        delay += self._rng(0.0, delay * JITTER_RATIO)

        return min(delay, self.max_delay)
