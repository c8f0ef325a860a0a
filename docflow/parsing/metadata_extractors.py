"""
Extratores de metadata por tipo de schema.

Dispatch por tabela (schema_type -> extrator):

| schema_type    | Extrator                       |
|----------------|--------------------------------|
| translation    | TranslationMetadataExtractor   |
| contradiction  | AnalysisMetadataExtractor      |
| ambiguity      | AnalysisMetadataExtractor      |
| analysis       | AnalysisMetadataExtractor      |
| general        | AnalysisMetadataExtractor      |

Sem schema_type explicito o tipo e inferido pelo formato dos dados.
"""

from datetime import datetime, timezone
from typing import Any, Optional


RISK_LEVELS = ("critical", "high", "medium", "low")
CONFIDENCE_FIELDS = ("confidence", "analysis_confidence", "overall_confidence")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
            return True
        except ValueError:
            return False
    return False


def _nested_value(data: dict, path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict) or current.get(key) is None:
            return None
        current = current[key]
    return current


class BaseMetadataExtractor:
    """Metadata comum a todos os tipos."""

    schema_type = "general"

    def extract(self, data: dict) -> dict:
        raise NotImplementedError

    def common_metadata(self, data: dict) -> dict:
        warnings = data.get("warnings")
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data_size": len(data),
            "has_warnings": bool(warnings),
            "warnings_count": len(warnings) if isinstance(warnings, list) else 0,
            "has_metadata": "metadata" in data,
        }

    def quality_metrics(self, data: dict) -> dict:
        metrics = {}
        if isinstance(data.get("quality_metrics"), dict):
            metrics.update(data["quality_metrics"])

        for name in CONFIDENCE_FIELDS:
            if _is_number(data.get(name)):
                metrics["confidence"] = float(data[name])
                break

        return metrics

    def risk_metrics(self, data: dict) -> dict:
        risks = {}
        if "risk_level" in data:
            risks["overall_risk"] = data["risk_level"]

        counts = dict.fromkeys(RISK_LEVELS, 0)
        self._count_risk_levels(data, counts)
        risks["risk_distribution"] = counts
        return risks

    def _count_risk_levels(self, data, counts: dict) -> None:
        items = data.items() if isinstance(data, dict) else enumerate(data)
        for key, value in items:
            if key in ("risk_level", "severity") and isinstance(value, str) and value in counts:
                counts[value] += 1
            elif isinstance(value, (dict, list)):
                self._count_risk_levels(value, counts)


class TranslationMetadataExtractor(BaseMetadataExtractor):
    """Qualidade da traducao, secoes, termos preservados, conceitos."""

    schema_type = "translation"

    def extract(self, data: dict) -> dict:
        metadata = self.common_metadata(data)
        metadata["translation_quality"] = self._translation_quality(data)
        metadata["sections_count"] = self._sections_count(data)
        metadata["terms_preserved"] = self._preserved_terms(data)
        metadata["key_concepts"] = self._key_concepts(data)
        metadata["complexity_metrics"] = self._complexity_metrics(data)
        return metadata

    @staticmethod
    def _translation_quality(data: dict) -> dict:
        quality_data = data.get("translation_quality")
        if not isinstance(quality_data, dict):
            return {}

        clarity = quality_data.get("clarity_score")
        completeness = quality_data.get("completeness_score")
        quality = {
            "clarity_score": float(clarity) if _is_number(clarity) else None,
            "completeness_score": float(completeness) if _is_number(completeness) else None,
            "readability_level": quality_data.get("readability_level"),
        }

        if quality["clarity_score"] is not None and quality["completeness_score"] is not None:
            quality["overall_score"] = (quality["clarity_score"] + quality["completeness_score"]) / 2

        return quality

    @staticmethod
    def _sections_count(data: dict) -> dict:
        if isinstance(data.get("sections"), list):
            sections, content_key = data["sections"], "content"
        elif isinstance(data.get("section_translations"), list):
            sections, content_key = data["section_translations"], "translated_content"
        else:
            return {}

        total_length = 0
        with_summary = 0
        for section in sections:
            if not isinstance(section, dict):
                continue
            if section.get("summary"):
                with_summary += 1
            if isinstance(section.get(content_key), str):
                total_length += len(section[content_key])

        return {
            "total_sections": len(sections),
            "sections_with_summary": with_summary,
            "average_content_length": round(total_length / len(sections)) if sections else 0,
        }

    @staticmethod
    def _preserved_terms(data: dict) -> dict:
        terms = data.get("legal_terms_preserved")
        if not isinstance(terms, list):
            return {}

        terms = [t for t in terms if isinstance(t, dict)]
        return {
            "total_terms": len(terms),
            "terms_with_explanation": sum(1 for t in terms if t.get("explanation")),
            "terms_with_context": sum(1 for t in terms if t.get("context")),
        }

    @staticmethod
    def _key_concepts(data: dict) -> dict:
        concepts = data.get("key_concepts")
        if not isinstance(concepts, list):
            return {}

        distribution = {"high": 0, "medium": 0, "low": 0}
        for concept in concepts:
            importance = concept.get("importance", "medium") if isinstance(concept, dict) else "medium"
            if isinstance(importance, str) and importance in distribution:
                distribution[importance] += 1

        return {"total_concepts": len(concepts), "importance_distribution": distribution}

    @staticmethod
    def _complexity_metrics(data: dict) -> dict:
        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            return {}

        complexity = {
            "original_length": metadata.get("original_length"),
            "simplified_length": metadata.get("simplified_length"),
            "complexity_reduction": metadata.get("complexity_reduction"),
        }

        original = complexity["original_length"]
        simplified = complexity["simplified_length"]
        if _is_number(original) and _is_number(simplified) and float(original) > 0:
            complexity["compression_ratio"] = round(float(simplified) / float(original), 2)

        return complexity


class AnalysisMetadataExtractor(BaseMetadataExtractor):
    """Metricas de analise: contradicoes, ambiguidades ou analise geral."""

    schema_type = "analysis"

    CONFIDENCE_PATHS = CONFIDENCE_FIELDS + (
        "methodology.confidence_level",
        "quality_indicators.analysis_confidence",
    )

    def extract(self, data: dict) -> dict:
        metadata = self.common_metadata(data)
        metadata["quality_metrics"] = self.quality_metrics(data)
        metadata["risk_metrics"] = self.risk_metrics(data)
        metadata["analysis_type"] = data.get("analysis_type", "unknown")
        metadata["confidence"] = self._confidence(data)

        analysis_type = data.get("analysis_type")
        if analysis_type == "contradiction":
            metadata["contradiction_metrics"] = self._contradiction_metrics(data)
        elif analysis_type == "ambiguity":
            metadata["ambiguity_metrics"] = self._ambiguity_metrics(data)
        else:
            metadata["general_metrics"] = self._general_metrics(data)

        return metadata

    def _confidence(self, data: dict) -> Optional[float]:
        for path in self.CONFIDENCE_PATHS:
            value = _nested_value(data, path)
            if _is_number(value):
                return float(value)
        return None

    @staticmethod
    def _distribution(items: list, key: str) -> dict:
        """Contagem por valor; valores que nao sao string contam como "unknown"."""
        result: dict = {}
        for item in items:
            value = item.get(key) if isinstance(item, dict) else None
            if not isinstance(value, str):
                value = "unknown"
            result[value] = result.get(value, 0) + 1
        return result

    def _contradiction_metrics(self, data: dict) -> dict:
        metrics = {}
        contradictions = data.get("contradictions_found")
        if isinstance(contradictions, list):
            metrics["total_contradictions"] = len(contradictions)
            metrics["type_distribution"] = self._distribution(contradictions, "type")
            metrics["severity_distribution"] = self._distribution(contradictions, "severity")

        summary = data.get("analysis_summary")
        if isinstance(summary, dict):
            metrics["consistency_score"] = summary.get("overall_consistency_score")
            metrics["total_from_summary"] = summary.get("total_contradictions")

        return metrics

    def _ambiguity_metrics(self, data: dict) -> dict:
        metrics = {}
        ambiguities = data.get("ambiguities_found")
        if isinstance(ambiguities, list):
            metrics["total_ambiguities"] = len(ambiguities)
            metrics["type_distribution"] = self._distribution(ambiguities, "type")
            metrics["risk_distribution"] = self._distribution(ambiguities, "risk_level")

        assessment = data.get("clarity_assessment")
        if isinstance(assessment, dict):
            metrics["clarity_score"] = assessment.get("overall_clarity_score")
            metrics["readability_metrics"] = assessment.get("readability_metrics", {})

        return metrics

    def _general_metrics(self, data: dict) -> dict:
        metrics = {}
        result = data.get("result")
        if isinstance(result, dict):
            key_findings = result.get("key_findings")
            metrics["has_summary"] = bool(result.get("summary"))
            metrics["has_details"] = bool(result.get("details"))
            metrics["key_findings_count"] = len(key_findings) if isinstance(key_findings, list) else 0

        recommendations = data.get("recommendations")
        if isinstance(recommendations, list):
            metrics["recommendations_count"] = len(recommendations)
            metrics["priority_distribution"] = self._distribution(recommendations, "priority")

        return metrics


class MetadataExtractorManager:
    """Seleciona o extrator pelo schema_type (explicito ou inferido)."""

    def __init__(self):
        analysis = AnalysisMetadataExtractor()
        self._extractors: dict[str, BaseMetadataExtractor] = {
            "translation": TranslationMetadataExtractor(),
            "contradiction": analysis,
            "ambiguity": analysis,
            "analysis": analysis,
            "general": analysis,
        }

    def extract_metadata(self, data: dict, schema_type: Optional[str] = None) -> dict:
        schema_type = schema_type or self.detect_schema_type(data)
        return self._extractors.get(schema_type, self._extractors["general"]).extract(data)

    def has_extractor(self, schema_type: str) -> bool:
        return schema_type in self._extractors

    def supported_schema_types(self) -> list[str]:
        return list(self._extractors)

    @staticmethod
    def detect_schema_type(data: dict) -> str:
        if "section_translations" in data:
            return "translation"
        if "contradictions_found" in data:
            return "contradiction"
        if "ambiguities_found" in data:
            return "ambiguity"

        sections = data.get("sections")
        if isinstance(sections, list) and sections and isinstance(sections[0], dict):
            section_type = sections[0].get("type")
            if isinstance(section_type, str) and section_type in ("translation", "contradiction", "ambiguity"):
                return section_type

        analysis_type = data.get("analysis_type")
        if isinstance(analysis_type, str) and analysis_type:
            return analysis_type

        return "general"
