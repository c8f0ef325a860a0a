"""
Configuracao global do pytest para os testes do docflow.

Adiciona a raiz do projeto ao path e expoe fixtures compartilhadas.
"""

import sys
from pathlib import Path

import pytest

root_path = Path(__file__).parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

from docflow.config import Config  # noqa: E402
from docflow.extraction.text_extractor import TextExtractor  # noqa: E402


SAMPLE_CONTRACT = """# Contrato de Prestacao de Servicos

Este contrato regula a prestacao de servicos de consultoria entre as partes identificadas abaixo.

## Objeto

O objeto deste contrato e a consultoria tecnica em sistemas de informacao durante doze meses.

# Disposicoes Finais

As partes elegem o foro da comarca de Sao Paulo para dirimir quaisquer duvidas."""


@pytest.fixture
def test_config():
    """Config com defaults (independente de variaveis de ambiente)."""
    return Config()


@pytest.fixture
def sample_text():
    return SAMPLE_CONTRACT


@pytest.fixture
def sample_document():
    return TextExtractor().extract(SAMPLE_CONTRACT, original_path="contrato.txt")
