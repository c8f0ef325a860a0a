"""
StructureAnalyzer - Monta a arvore de secoes de um documento extraido.

Pipeline:

    ExtractedDocument
        │
        ├─ 1. InputValidator.validate_document  (falha -> resultado degradado)
        ├─ 2. reset do ledger do AnchorGenerator
        ├─ 3. detector.detect_sections          (lista plana)
        ├─ 4. filtro por confianca (< threshold sai)
        ├─ 5. ordenacao por start_position + ancoras
        ├─ 6. hierarquia (pilha por nivel)
        └─ 7. estatisticas, confianca media, warnings

analyze() nunca levanta excecao: erros de validacao e do detector viram
metadata ("validation_error" / "error") e warnings do resultado.
"""

import hashlib
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..config import Config, config as default_config
from ..exceptions import AnalysisError, ValidationError
from ..extraction.models import ExtractedDocument
from .anchor_generator import AnchorGenerator
from .input_validator import MIN_PLAIN_TEXT_LENGTH, InputValidator
from .section_detector import SectionDetector
from .section_models import DocumentSection, StructureAnalysisResult, flatten_sections

logger = logging.getLogger(__name__)


ANALYZER_VERSION = "1.0.0"


class StructureAnalyzer:
    """
    Analisador estrutural.

    O detector so precisa expor detect_sections(document) -> list[DocumentSection].

    Usage:
        analyzer = StructureAnalyzer()
        result = analyzer.analyze(document)
        if result.is_successful:
            for section in result.all_sections():
                print(section.anchor, section.title)
    """

    def __init__(
        self,
        detector=None,
        anchor_generator: Optional[AnchorGenerator] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or default_config
        self.detector = detector or SectionDetector()
        self.anchor_generator = anchor_generator or AnchorGenerator(self.config)
        self.min_confidence_threshold = self.config.min_confidence_threshold
        self.max_analysis_time = self.config.max_analysis_time_seconds

    # =========================================================================
    # API
    # =========================================================================

    def analyze(self, document: ExtractedDocument) -> StructureAnalysisResult:
        try:
            InputValidator.validate_document(document)
        except ValidationError as e:
            logger.error(f"Validacao do documento falhou ({document.original_path}): {e}")
            return StructureAnalysisResult(
                document_id=self._document_id(document),
                metadata={"validation_error": str(e)},
                warnings=[f"Validacao do documento falhou: {e}"],
            )

        start_time = time.perf_counter()
        logger.info(
            f"Analise estrutural iniciada: {document.original_path} "
            f"({document.elements_count} elementos)"
        )

        try:
            self.anchor_generator.reset_used_anchors()

            try:
                detected = list(self.detector.detect_sections(document))
            except Exception as e:
                raise AnalysisError(f"Falha na deteccao de secoes: {e}") from e

            kept = self._filter_by_confidence(detected)
            ordered = sorted(kept, key=lambda s: s.start_position)
            anchored = self._assign_anchors(ordered)
            sections = self._build_hierarchy(anchored)

            statistics = self._calculate_statistics(sections, document)
            average_confidence = self._average_confidence(sections)
            analysis_time = time.perf_counter() - start_time

            if analysis_time > self.max_analysis_time:
                logger.warning(
                    f"Analise estrutural demorou demais: {analysis_time:.2f}s "
                    f"(limite: {self.max_analysis_time}s)"
                )

            metadata = self._analysis_metadata(document, detected)
            metadata["filtered_out"] = len(detected) - len(kept)

            result = StructureAnalysisResult(
                document_id=self._document_id(document),
                sections=sections,
                analysis_time=analysis_time,
                average_confidence=average_confidence,
                statistics=statistics,
                metadata=metadata,
                warnings=self._warnings(sections, analysis_time, average_confidence),
            )

            logger.info(
                f"Analise estrutural concluida: {result.sections_count} secoes raiz, "
                f"{statistics.get('total_sections', 0)} no total, "
                f"confianca media {average_confidence} em {analysis_time:.3f}s"
            )
            return result

        except Exception as e:
            analysis_time = time.perf_counter() - start_time
            logger.error(f"Analise estrutural falhou ({document.original_path}): {e}")
            return StructureAnalysisResult(
                document_id=self._document_id(document),
                analysis_time=analysis_time,
                metadata={"error": str(e)},
                warnings=[f"Analise falhou: {e}"],
            )

    def analyze_batch(self, documents: dict) -> dict:
        """
        Analisa varios documentos.

        Raises:
            ValidationError: se o batch como um todo for invalido
        """
        try:
            InputValidator.validate_document_batch(documents, self.config.max_batch_size)
        except ValidationError as e:
            logger.error(f"Validacao do batch falhou ({len(documents or {})} documentos): {e}")
            raise

        results = {}
        for key, document in documents.items():
            try:
                results[key] = self.analyze(document)
            except Exception as e:
                logger.error(f"Batch: falha no documento '{key}': {e}")
                results[key] = StructureAnalysisResult(
                    document_id=self._document_id(document),
                    metadata={"batch_error": str(e)},
                    warnings=[f"Processamento do batch falhou: {e}"],
                )

        return results

    def can_analyze(self, document: ExtractedDocument) -> bool:
        if not document.elements:
            return False

        if len(document.plain_text().strip()) < MIN_PLAIN_TEXT_LENGTH:
            return False

        if document.has_errors():
            logger.warning(
                f"Documento com erros de extracao, analise pode ser imprecisa: "
                f"{document.original_path} {document.errors}"
            )

        return True

    # =========================================================================
    # Etapas
    # =========================================================================

    def _filter_by_confidence(self, sections: list[DocumentSection]) -> list[DocumentSection]:
        return [s for s in sections if s.confidence >= self.min_confidence_threshold]

    def _assign_anchors(self, sections: list[DocumentSection]) -> list[DocumentSection]:
        """Gera ancora para secoes sem ancora, em ordem do documento."""
        return [
            s if s.anchor else s.with_anchor(self.anchor_generator.generate(s.id, s.title))
            for s in sections
        ]

    def _build_hierarchy(self, sections: list[DocumentSection]) -> tuple:
        """
        Monta a floresta por nivel e ordem.

        Os nos vivem numa arena (lista) e sao referenciados pelo indice;
        ids externos nao precisam ser unicos. A pilha guarda a cadeia de
        ancestrais abertos. Filhos sao materializados de baixo para cima
        no final, sem reconstruir pais a cada insercao.
        """
        children: list[list[int]] = [[] for _ in sections]
        roots: list[int] = []
        stack: list[int] = []

        for index, section in enumerate(sections):
            while stack and sections[stack[-1]].level >= section.level:
                stack.pop()

            if stack:
                children[stack[-1]].append(index)
            else:
                roots.append(index)

            stack.append(index)

        def materialize(index: int) -> DocumentSection:
            section = sections[index]
            if not children[index]:
                return section
            return section.with_subsections(tuple(materialize(c) for c in children[index]))

        return tuple(materialize(i) for i in roots)

    def _calculate_statistics(self, sections: tuple, document: ExtractedDocument) -> dict:
        all_sections = flatten_sections(sections)

        if not all_sections:
            return {
                "total_sections": 0,
                "sections_by_level": {},
                "average_section_length": 0,
                "total_content_length": 0,
                "coverage_percentage": 0.0,
                "max_depth": 0,
            }

        sections_by_level: dict[int, int] = {}
        total_length = 0
        for section in all_sections:
            sections_by_level[section.level] = sections_by_level.get(section.level, 0) + 1
            total_length += len(section.content)

        document_length = len(document.plain_text())
        coverage = (total_length / document_length) * 100 if document_length else 0.0

        return {
            "total_sections": len(all_sections),
            "sections_by_level": dict(sorted(sections_by_level.items())),
            "average_section_length": int(total_length / len(all_sections)),
            "total_content_length": total_length,
            "coverage_percentage": round(coverage, 2),
            "max_depth": max(sections_by_level),
        }

    @staticmethod
    def _average_confidence(sections: tuple) -> float:
        all_sections = flatten_sections(sections)
        if not all_sections:
            return 0.0
        return round(sum(s.confidence for s in all_sections) / len(all_sections), 3)

    def _warnings(self, sections: tuple, analysis_time: float, average_confidence: float) -> list[str]:
        warnings = []

        if not sections:
            warnings.append("Nenhuma secao detectada no documento")

        threshold = self.config.low_confidence_warning
        low_confidence = [s for s in flatten_sections(sections) if s.confidence < threshold]
        if low_confidence:
            warnings.append(f"{len(low_confidence)} secoes com confianca baixa (< {threshold})")

        if analysis_time >= self.max_analysis_time * 0.8:
            warnings.append(
                f"Tempo de analise ({analysis_time:.2f}s) proximo do limite ({self.max_analysis_time}s)"
            )

        if average_confidence < self.config.low_average_confidence_warning:
            warnings.append(f"Confianca media baixa: {average_confidence:.2f}")

        return warnings

    @staticmethod
    def _analysis_metadata(document: ExtractedDocument, detected: list) -> dict:
        return {
            "document_mime_type": document.mime_type,
            "document_pages": document.total_pages,
            "document_extraction_time": document.extraction_time,
            "total_elements": document.elements_count,
            "element_types": sorted({e.type for e in document.elements}),
            "raw_sections_detected": len(detected),
            "analyzer_version": ANALYZER_VERSION,
            "analysis_timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def _document_id(document) -> str:
        path = getattr(document, "original_path", "unknown")
        digest = hashlib.md5(f"{path}{time.time()}".encode()).hexdigest()
        return f"doc_{digest}"
