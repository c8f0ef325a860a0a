"""
TextExtractor - Converte texto bruto em ExtractedDocument.

O texto e dividido em blocos separados por linhas em branco. O separador
(menos a quebra de linha que o join de plain_text() recoloca) fica grudado
no fim do bloco, entao:

    TextExtractor().extract(raw).plain_text() == raw

Isso permite que as secoes detectadas sejam localizadas por busca de
substring no texto original.

Classificacao de headers (primeira linha do bloco):

| Tipo      | Exemplo                    | Nivel             | Confianca |
|-----------|----------------------------|-------------------|-----------|
| Markdown  | "## Objeto"                | quantidade de #   | 0.9       |
| Numerado  | "1. Objeto", "2.3 Prazos"  | grupos numericos  | 0.7       |
| Palavra   | "CAPITULO I", "Section 2"  | 1, 2 ou 3         | 0.7       |
"""

import logging
import re
import time
from typing import Optional

from .models import DocumentElement, ExtractedDocument

logger = logging.getLogger(__name__)


MARKDOWN_CONFIDENCE = 0.9
PATTERN_CONFIDENCE = 0.7
MAX_HEADING_LENGTH = 200

# Separador de blocos: uma ou mais linhas em branco
_RE_BLOCK_SEPARATOR = re.compile(r"(\n[ \t]*\n(?:[ \t]*\n)*)")

# "# Titulo" ... "###### Titulo"
_RE_MARKDOWN_HEADING = re.compile(r"^(#{1,6})\s+(.+?)\s*#*$")

# "1. Titulo", "1.2 Titulo", "1.2.3. Titulo"
_RE_NUMBERED_HEADING = re.compile(r"^(\d+\.(?:\d+\.?)*)\s+(\S.*)$")

# Palavras-chave de estrutura (pt, en, ru)
_KEYWORD_LEVELS = (
    (re.compile(r"^(?:cap[ií]tulo|chapter|раздел|глава)\s+\S+", re.IGNORECASE), 1),
    (re.compile(r"^(?:se[cç][aã]o|section)\s+\S+", re.IGNORECASE), 2),
    (re.compile(r"^(?:artigo|art\.|article|статья)\s*\d+", re.IGNORECASE), 3),
)


def classify_heading(line: str) -> Optional[tuple[int, str, float, str]]:
    """
    Classifica a linha como heading.

    Returns:
        (level, title, confidence, detection) ou None se nao for heading
    """
    line = line.strip()
    if not line or len(line) > MAX_HEADING_LENGTH:
        return None

    match = _RE_MARKDOWN_HEADING.match(line)
    if match:
        return len(match.group(1)), match.group(2).strip(), MARKDOWN_CONFIDENCE, "markdown"

    match = _RE_NUMBERED_HEADING.match(line)
    if match:
        groups = [g for g in match.group(1).split(".") if g]
        return len(groups), line, PATTERN_CONFIDENCE, "numbered"

    for pattern, level in _KEYWORD_LEVELS:
        if pattern.match(line):
            return level, line, PATTERN_CONFIDENCE, "keyword"

    return None


class TextExtractor:
    """
    Extrator de texto puro.

    Usage:
        document = TextExtractor().extract(raw_text)
        assert document.plain_text() == raw_text
    """

    def __init__(self, mime_type: str = "text/plain"):
        self.mime_type = mime_type

    def extract(self, text: str, original_path: str = "direct_input") -> ExtractedDocument:
        start_time = time.perf_counter()

        parts = _RE_BLOCK_SEPARATOR.split(text)
        elements = []
        cursor = 0

        # parts = [bloco0, sep0, bloco1, sep1, ..., blocoN]
        for i in range(0, len(parts), 2):
            block = parts[i]
            separator = parts[i + 1] if i + 1 < len(parts) else ""
            # O join de plain_text() recoloca um "\n"
            content = block + separator[:-1] if separator else block

            element = self._build_element(block, content, cursor)
            elements.append(element)
            cursor += len(content) + 1

        elapsed = time.perf_counter() - start_time
        headers = sum(1 for e in elements if e.is_header)
        logger.debug(
            f"TextExtractor: {len(elements)} elementos ({headers} headers) "
            f"em {elapsed * 1000:.1f}ms"
        )

        return ExtractedDocument(
            original_path=original_path,
            mime_type=self.mime_type,
            elements=tuple(elements),
            metadata={"processing_mode": "direct_content"},
            total_pages=1,
            extraction_time=elapsed,
        )

    def _build_element(self, block: str, content: str, start: int) -> DocumentElement:
        position = {"start": start, "end": start + len(content)}
        first_line = block.strip().split("\n", 1)[0] if block.strip() else ""

        heading = classify_heading(first_line)
        if heading is None:
            return DocumentElement(
                type="paragraph" if block.strip() else "text",
                content=content,
                position=position,
            )

        level, title, confidence, detection = heading
        return DocumentElement(
            type="header",
            content=content,
            position=position,
            level=level,
            metadata={
                "title": title,
                "confidence": confidence,
                "detection": detection,
            },
        )
