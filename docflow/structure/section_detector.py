"""
SectionDetector - Deteccao de secoes por headers.

Cada header abre uma secao que vai ate o proximo header. O conteudo da
secao e o trecho exato de document.plain_text() coberto pelos elementos
(header incluido), entao start/end sao offsets validos no texto puro.

Elementos anteriores ao primeiro header nao pertencem a nenhuma secao.
Sem nenhum header o documento inteiro vira uma secao de nivel 1 com
confianca NO_HEADER_CONFIDENCE.

A saida e plana: a hierarquia e montada pelo StructureAnalyzer.
"""

import logging

from ..extraction.models import DocumentElement, ExtractedDocument
from .section_models import MAX_SECTION_LEVEL, DocumentSection

logger = logging.getLogger(__name__)


NO_HEADER_CONFIDENCE = 0.5
FALLBACK_TITLE_LENGTH = 80


class SectionDetector:
    """Detector padrao usado pelo StructureAnalyzer."""

    def __init__(self, id_prefix: str = "section"):
        self.id_prefix = id_prefix

    def detect_sections(self, document: ExtractedDocument) -> list[DocumentSection]:
        # Offsets de cada elemento no texto puro (join com "\n")
        offsets = []
        cursor = 0
        for element in document.elements:
            offsets.append(cursor)
            cursor += len(element.plain_text) + 1

        header_indexes = [i for i, element in enumerate(document.elements) if element.is_header]

        if not header_indexes:
            logger.debug(f"Nenhum header em {document.original_path}, documento vira uma secao")
            return self._whole_document_section(document)

        sections = []
        bounds = header_indexes + [len(document.elements)]

        for number, (first, last) in enumerate(zip(bounds, bounds[1:]), start=1):
            elements = document.elements[first:last]
            header = elements[0]
            content = "\n".join(e.plain_text for e in elements)

            sections.append(
                DocumentSection(
                    id=self._section_id(number),
                    title=self._header_title(header),
                    content=content,
                    level=self._header_level(header),
                    start_position=offsets[first],
                    end_position=offsets[first] + len(content),
                    elements=tuple(elements),
                    confidence=header.confidence,
                    metadata={
                        "detection": header.metadata.get("detection", "header"),
                        "page_number": header.page_number,
                    },
                )
            )

        logger.debug(f"SectionDetector: {len(sections)} secoes em {document.original_path}")
        return sections

    def _whole_document_section(self, document: ExtractedDocument) -> list[DocumentSection]:
        content = document.plain_text()
        if not content.strip():
            return []

        first_line = content.strip().split("\n", 1)[0].strip()
        title = first_line[:FALLBACK_TITLE_LENGTH]

        return [
            DocumentSection(
                id=self._section_id(1),
                title=title,
                content=content,
                level=1,
                start_position=0,
                end_position=len(content),
                elements=tuple(document.elements),
                confidence=NO_HEADER_CONFIDENCE,
                metadata={"detection": "whole_document"},
            )
        ]

    def _section_id(self, number: int) -> str:
        return f"{self.id_prefix}_{number:03d}"

    @staticmethod
    def _header_title(header: DocumentElement) -> str:
        title = header.metadata.get("title") or header.plain_text.strip().split("\n", 1)[0]
        return title.strip()[:FALLBACK_TITLE_LENGTH * 2] or "Untitled"

    @staticmethod
    def _header_level(header: DocumentElement) -> int:
        return min(max(header.level, 1), MAX_SECTION_LEVEL)
