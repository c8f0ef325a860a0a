"""
Modelos do documento extraido.

ExtractedDocument e produzido uma unica vez por documento (pelo extrator
externo ou pelo TextExtractor) e nunca e modificado depois.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class DocumentElement:
    """Elemento de conteudo (header, paragraph, table, list...)."""

    type: str
    content: str
    position: dict = field(default_factory=dict)  # {"start": int, "end": int}
    page_number: int = 1
    level: int = 0  # So faz sentido para headers
    metadata: dict = field(default_factory=dict)

    @property
    def plain_text(self) -> str:
        return self.content

    @property
    def is_header(self) -> bool:
        return self.type == "header"

    @property
    def confidence(self) -> float:
        value = self.metadata.get("confidence", 1.0)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return 1.0

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "content": self.content,
            "position": self.position,
            "page_number": self.page_number,
            "level": self.level,
            "metadata": self.metadata,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ExtractedDocument:
    """Documento ja extraido: elementos ordenados + metadados."""

    original_path: str
    mime_type: str
    elements: tuple = ()
    metadata: dict = field(default_factory=dict)
    total_pages: int = 1
    extraction_time: float = 0.0
    errors: Optional[list] = None

    def plain_text(self) -> str:
        """Texto puro: conteudo dos elementos unido por quebra de linha."""
        return "\n".join(element.plain_text for element in self.elements)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def elements_by_type(self, element_type: str) -> list[DocumentElement]:
        return [e for e in self.elements if e.type == element_type]

    def headers(self) -> list[DocumentElement]:
        return self.elements_by_type("header")

    @property
    def elements_count(self) -> int:
        return len(self.elements)

    def to_dict(self) -> dict:
        return {
            "original_path": self.original_path,
            "mime_type": self.mime_type,
            "elements": [e.to_dict() for e in self.elements],
            "metadata": self.metadata,
            "total_pages": self.total_pages,
            "extraction_time": self.extraction_time,
            "errors": self.errors,
        }
