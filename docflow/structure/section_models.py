"""
Section Models - Estruturas de dados da analise estrutural.

DocumentSection e um valor imutavel. "Adicionar uma subsecao" significa
construir uma nova instancia (with_subsection), nunca alterar campos.

    StructureAnalysisResult
    ├── sections: tuple[DocumentSection]   (floresta, ordem do documento)
    │     └── subsections: tuple[DocumentSection]
    ├── statistics: total, por nivel, cobertura, profundidade
    ├── metadata: dados do documento / erro capturado
    └── warnings: lista de avisos
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from ..exceptions import ValidationError


MAX_SECTION_LEVEL = 10

# Chaves de metadata que indicam analise degradada
ERROR_METADATA_KEYS = ("validation_error", "error", "batch_error")


@dataclass(frozen=True)
class DocumentSection:
    """Secao detectada: titulo, nivel, posicao, ancora e subsecoes."""

    id: str
    title: str
    content: str
    level: int
    start_position: int
    end_position: int
    anchor: str = ""
    elements: tuple = ()
    subsections: tuple = ()
    confidence: float = 1.0
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValidationError("Section ID nao pode ser vazio")
        if not self.title or not self.title.strip():
            raise ValidationError("Section title nao pode ser vazio")
        if self.level < 1 or self.level > MAX_SECTION_LEVEL:
            raise ValidationError(f"Section level deve estar entre 1 e {MAX_SECTION_LEVEL}")
        if self.start_position < 0 or self.end_position < 0 or self.start_position > self.end_position:
            raise ValidationError(
                f"Posicoes invalidas: start={self.start_position}, end={self.end_position}"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(f"Confidence deve estar entre 0.0 e 1.0, recebido: {self.confidence}")

    def with_subsection(self, subsection: "DocumentSection") -> "DocumentSection":
        """Nova instancia com a subsecao adicionada ao final."""
        return replace(self, subsections=self.subsections + (subsection,))

    def with_subsections(self, subsections: tuple) -> "DocumentSection":
        return replace(self, subsections=self.subsections + tuple(subsections))

    def with_anchor(self, anchor: str) -> "DocumentSection":
        return replace(self, anchor=anchor)

    @property
    def has_subsections(self) -> bool:
        return bool(self.subsections)

    @property
    def subsection_count(self) -> int:
        return len(self.subsections)

    @property
    def total_length(self) -> int:
        return len(self.content)

    def all_subsections(self) -> list["DocumentSection"]:
        """Todas as subsecoes em pre-ordem (ordem do documento)."""
        result = []
        for subsection in self.subsections:
            result.append(subsection)
            result.extend(subsection.all_subsections())
        return result

    def plain_text(self) -> str:
        text = self.content
        for subsection in self.subsections:
            text += "\n\n" + subsection.plain_text()
        return text

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "level": self.level,
            "start_position": self.start_position,
            "end_position": self.end_position,
            "anchor": self.anchor,
            "elements_count": len(self.elements),
            "subsections_count": self.subsection_count,
            "total_length": self.total_length,
            "confidence": self.confidence,
            "metadata": self.metadata,
            "subsections": [s.to_dict() for s in self.subsections],
        }


def flatten_sections(sections) -> list[DocumentSection]:
    """Achata a floresta em pre-ordem."""
    result = []
    for section in sections:
        result.append(section)
        result.extend(section.all_subsections())
    return result


@dataclass
class StructureAnalysisResult:
    """Resultado da analise estrutural de um documento."""

    document_id: str
    sections: tuple = ()
    analysis_time: float = 0.0
    average_confidence: float = 0.0
    statistics: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)

    @property
    def is_successful(self) -> bool:
        """True se nenhum erro de validacao/analise foi registrado."""
        return not any(key in self.metadata for key in ERROR_METADATA_KEYS)

    @property
    def error(self) -> Optional[str]:
        for key in ERROR_METADATA_KEYS:
            if key in self.metadata:
                return self.metadata[key]
        return None

    @property
    def sections_count(self) -> int:
        return len(self.sections)

    @property
    def total_subsections_count(self) -> int:
        return sum(len(s.all_subsections()) for s in self.sections)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def all_sections(self) -> list[DocumentSection]:
        return flatten_sections(self.sections)

    def sections_by_level(self, level: int) -> list[DocumentSection]:
        return [s for s in self.all_sections() if s.level == level]

    def find_section_by_id(self, section_id: str) -> Optional[DocumentSection]:
        for section in self.all_sections():
            if section.id == section_id:
                return section
        return None

    def all_anchors(self) -> list[str]:
        return [s.anchor for s in self.all_sections()]

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "is_successful": self.is_successful,
            "analysis_time": round(self.analysis_time, 4),
            "average_confidence": self.average_confidence,
            "sections_count": self.sections_count,
            "total_subsections_count": self.total_subsections_count,
            "sections": [s.to_dict() for s in self.sections],
            "statistics": self.statistics,
            "metadata": self.metadata,
            "warnings": self.warnings,
            "anchors": self.all_anchors(),
        }
