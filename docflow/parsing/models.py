"""
Modelos do parsing de respostas do LLM.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class LlmParsingRequest:
    """Pedido de parsing de uma resposta bruta do modelo."""

    raw_response: str
    expected_schema: Optional[dict] = None
    schema_type: Optional[str] = None
    original_anchors: list[str] = field(default_factory=list)
    validation_rules: list[str] = field(default_factory=list)
    strict_validation: bool = True

    @classmethod
    def for_translation(
        cls,
        raw_response: str,
        original_anchors: list[str],
        schema: Optional[dict] = None,
    ) -> "LlmParsingRequest":
        return cls(
            raw_response=raw_response,
            expected_schema=schema,
            schema_type="translation",
            original_anchors=list(original_anchors),
            validation_rules=["anchors_required"],
            strict_validation=True,
        )

    @classmethod
    def for_analysis(
        cls,
        raw_response: str,
        analysis_type: str,
        schema: Optional[dict] = None,
    ) -> "LlmParsingRequest":
        return cls(
            raw_response=raw_response,
            expected_schema=schema,
            schema_type=analysis_type,
            validation_rules=["confidence_required"],
            strict_validation=True,
        )

    @classmethod
    def for_general(cls, raw_response: str, schema: Optional[dict] = None) -> "LlmParsingRequest":
        return cls(
            raw_response=raw_response,
            expected_schema=schema,
            schema_type="general",
            strict_validation=False,
        )


@dataclass
class AnchorValidation:
    """Auditoria de uma ancora (original ou vinda da resposta)."""

    anchor: str
    is_valid: bool
    found_in_response: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "anchor": self.anchor,
            "is_valid": self.is_valid,
            "found_in_response": self.found_in_response,
            "error": self.error,
        }


@dataclass
class ParsedLlmResponse:
    """Resultado do parsing: dados normalizados + auditoria + erros/warnings."""

    is_valid: bool
    parsed_data: dict = field(default_factory=dict)
    anchor_validation: list[AnchorValidation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    schema_type: Optional[str] = None
    raw_response: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.is_valid and not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_partial_results(self) -> bool:
        return self.is_valid and bool(self.warnings)

    @property
    def valid_anchor_count(self) -> int:
        return sum(1 for a in self.anchor_validation if a.is_valid)

    @property
    def invalid_anchor_count(self) -> int:
        return sum(1 for a in self.anchor_validation if not a.is_valid)

    def anchor_validation_errors(self) -> list[AnchorValidation]:
        return [a for a in self.anchor_validation if not a.is_valid]

    def get_data_by_path(self, path: str, default: Any = None) -> Any:
        """Acesso por caminho pontuado: "analysis_summary.confidence"."""
        current: Any = self.parsed_data
        for key in path.split("."):
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    def get_content_by_anchor(self, anchor: str) -> Optional[str]:
        return self.get_anchor_content_map().get(anchor)

    def get_anchor_content_map(self) -> dict[str, str]:
        """
        {anchor: content} a partir de sections[].{anchor, content}.

        Formato legado: section_translations[].{anchor, translated_content}.
        """
        sections = self.parsed_data.get("sections")
        if isinstance(sections, list):
            return self._collect(sections, "content")

        legacy = self.parsed_data.get("section_translations")
        if isinstance(legacy, list):
            return self._collect(legacy, "translated_content")

        return {}

    @staticmethod
    def _collect(items: list, content_key: str) -> dict[str, str]:
        result = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            anchor = item.get("anchor")
            content = item.get(content_key)
            if anchor is None or content is None:
                continue
            result[str(anchor)] = content if isinstance(content, str) else str(content)
        return result

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "parsed_data": self.parsed_data,
            "anchor_validation": [a.to_dict() for a in self.anchor_validation],
            "warnings": self.warnings,
            "errors": self.errors,
            "schema_type": self.schema_type,
            "metadata": self.metadata,
        }
