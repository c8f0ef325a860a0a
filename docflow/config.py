"""
Configuracoes do docflow.

Todos os componentes aceitam um Config opcional e usam o singleton
`config` (carregado das variaveis de ambiente) quando nada e passado.
"""

import os
from dataclasses import dataclass


@dataclass
class Config:
    """Configuracao do pipeline de documentos."""

    # Analise estrutural
    min_confidence_threshold: float = 0.5  # Secoes abaixo disso sao descartadas
    max_analysis_time_seconds: float = 30.0  # Orcamento "soft" (so gera warning)
    low_confidence_warning: float = 0.7
    low_average_confidence_warning: float = 0.6
    max_batch_size: int = 100

    # Ancoras
    anchor_prefix: str = "<!-- SECTION_ANCHOR_"
    anchor_suffix: str = " -->"
    anchor_max_title_length: int = 50
    anchor_transliteration: bool = True
    anchor_normalize_case: bool = True
    anchor_position: str = "end"  # "start" ou "end"

    # Retry
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_backoff_multiplier: float = 2.0
    retry_max_delay: float = 60.0

    # vLLM (API OpenAI-compatible)
    vllm_base_url: str = "http://localhost:8002/v1"
    vllm_model: str = "Qwen/Qwen3-8B-AWQ"
    vllm_light_model: str = "Qwen/Qwen3-4B-AWQ"
    vllm_timeout: float = 300.0

    # Selecao adaptativa de modelo/tokens
    default_max_tokens: int = 4000
    light_max_tokens: int = 2000
    long_text_max_tokens: int = 8000
    short_text_threshold: int = 2000  # caracteres
    long_text_threshold: int = 20000  # caracteres
    default_temperature: float = 0.1

    @classmethod
    def from_env(cls) -> "Config":
        """Carrega configuracao de variaveis de ambiente."""
        return cls(
            min_confidence_threshold=float(os.getenv("DOCFLOW_MIN_CONFIDENCE", "0.5")),
            max_analysis_time_seconds=float(os.getenv("DOCFLOW_MAX_ANALYSIS_TIME", "30")),
            max_batch_size=int(os.getenv("DOCFLOW_MAX_BATCH_SIZE", "100")),
            anchor_max_title_length=int(os.getenv("DOCFLOW_ANCHOR_MAX_LENGTH", "50")),
            anchor_transliteration=os.getenv("DOCFLOW_ANCHOR_TRANSLITERATION", "true").lower() == "true",
            anchor_normalize_case=os.getenv("DOCFLOW_ANCHOR_NORMALIZE_CASE", "true").lower() == "true",
            anchor_position=os.getenv("DOCFLOW_ANCHOR_POSITION", "end"),
            retry_max_attempts=int(os.getenv("DOCFLOW_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(os.getenv("DOCFLOW_RETRY_BASE_DELAY", "1.0")),
            retry_backoff_multiplier=float(os.getenv("DOCFLOW_RETRY_MULTIPLIER", "2.0")),
            retry_max_delay=float(os.getenv("DOCFLOW_RETRY_MAX_DELAY", "60")),
            vllm_base_url=os.getenv("VLLM_BASE_URL", "http://localhost:8002/v1"),
            vllm_model=os.getenv("VLLM_MODEL", "Qwen/Qwen3-8B-AWQ"),
            vllm_light_model=os.getenv("VLLM_LIGHT_MODEL", "Qwen/Qwen3-4B-AWQ"),
            vllm_timeout=float(os.getenv("VLLM_TIMEOUT", "300")),
            default_max_tokens=int(os.getenv("DOCFLOW_MAX_TOKENS", "4000")),
            default_temperature=float(os.getenv("DOCFLOW_TEMPERATURE", "0.1")),
        )


# Singleton
config = Config.from_env()
