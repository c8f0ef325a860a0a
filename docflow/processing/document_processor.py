"""
DocumentProcessor - Orquestra o pipeline completo de um documento.

    texto / ExtractedDocument
        │
        ├─ 1. StructureAnalyzer.analyze         (falha -> texto sem ancoras)
        ├─ 2. ancoras inseridas no texto        (cursor so avanca)
        ├─ 3. prompt por tarefa + ids validos
        ├─ 4. modelo/tokens adaptativos          (options do chamador vencem)
        ├─ 5. client.execute via RetryHandler
        ├─ 6. LlmResponseParser.parse_with_fallback (nao-estrito)
        └─ 7. ancora -> TRANSLATION_BLOCK_START ... TRANSLATION_BLOCK_END

Resposta inutilizavel ou sem ancoras do texto -> retorna o texto ancorado sem substituicoes.
Qualquer outra falha -> ProcessingError (com a causa encadeada).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..config import Config, config as default_config
from ..exceptions import ProcessingError, ValidationError
from ..extraction.models import ExtractedDocument
from ..extraction.text_extractor import TextExtractor
from ..llm.exceptions import RateLimitError, TransientProviderError
from ..llm.retry_handler import RetryHandler
from ..llm.vllm_client import ModelResult, VLLMClient
from ..parsing.models import LlmParsingRequest, ParsedLlmResponse
from ..parsing.response_parser import LlmResponseParser
from ..parsing.schemas import sections_response_schema
from ..structure.anchor_generator import AnchorGenerator
from ..structure.section_models import StructureAnalysisResult, flatten_sections
from ..structure.structure_analyzer import StructureAnalyzer
from .prompts import build_prompt

logger = logging.getLogger(__name__)


BLOCK_START = "TRANSLATION_BLOCK_START"
BLOCK_END = "TRANSLATION_BLOCK_END"

RETRYABLE_ERRORS = (RateLimitError, TransientProviderError)


@dataclass
class ProcessingResult:
    """Relatorio de um processamento."""

    text: str
    task_type: str
    anchors_inserted: list[str] = field(default_factory=list)
    anchors_replaced: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    fallback_used: bool = False
    structure_result: Optional[StructureAnalysisResult] = None
    parsed_response: Optional[ParsedLlmResponse] = None
    model_result: Optional[ModelResult] = None
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "task_type": self.task_type,
            "anchors_inserted": self.anchors_inserted,
            "anchors_replaced": self.anchors_replaced,
            "warnings": self.warnings,
            "fallback_used": self.fallback_used,
            "structure": self.structure_result.to_dict() if self.structure_result else None,
            "parsing": self.parsed_response.to_dict() if self.parsed_response else None,
            "model": self.model_result.to_dict() if self.model_result else None,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


def format_block(content: str, task_type: str) -> str:
    return f'{BLOCK_START} type="{task_type}"\n{content}\n{BLOCK_END}'


class DocumentProcessor:
    """
    Pipeline documento -> LLM -> documento processado.

    O client so precisa expor execute(prompt, options) -> ModelResult.

    Usage:
        processor = DocumentProcessor(client=VLLMClient())
        text = processor.process(raw_text, task_type="translation")
    """

    def __init__(
        self,
        analyzer: Optional[StructureAnalyzer] = None,
        anchor_generator: Optional[AnchorGenerator] = None,
        client=None,
        parser: Optional[LlmResponseParser] = None,
        retry_handler: Optional[RetryHandler] = None,
        extractor: Optional[TextExtractor] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or default_config

        if analyzer is not None:
            self.analyzer = analyzer
            self.anchor_generator = anchor_generator or analyzer.anchor_generator
        else:
            self.anchor_generator = anchor_generator or AnchorGenerator(self.config)
            self.analyzer = StructureAnalyzer(anchor_generator=self.anchor_generator, config=self.config)

        self.client = client or VLLMClient(self.config)
        self.parser = parser or LlmResponseParser()
        self.retry_handler = retry_handler or RetryHandler.for_llm_operations(self.config)
        self.extractor = extractor or TextExtractor()

    # =========================================================================
    # API
    # =========================================================================

    def process(self, content: str, task_type: str = "translation", options: Optional[dict] = None) -> str:
        """Processa texto bruto e retorna o texto final."""
        return self.process_with_report(content, task_type, options).text

    def process_with_report(
        self,
        content: str,
        task_type: str = "translation",
        options: Optional[dict] = None,
    ) -> ProcessingResult:
        try:
            document = self.extractor.extract(content)
        except Exception as e:
            raise ProcessingError(
                f"Falha ao extrair documento ({task_type}): {e}", task_type=task_type, stage="extraction"
            ) from e

        return self.process_document(document, task_type, options)

    def process_document(
        self,
        document: ExtractedDocument,
        task_type: str = "translation",
        options: Optional[dict] = None,
    ) -> ProcessingResult:
        """Processa um documento ja extraido."""
        start_time = time.perf_counter()
        options = options or {}
        stage = "analysis"

        try:
            working_text = document.plain_text()
            logger.info(
                f"Processamento iniciado: task={task_type}, {len(working_text)} caracteres, "
                f"path={document.original_path}"
            )

            structure = self.analyzer.analyze(document)
            warnings = list(structure.warnings)

            if structure.is_successful:
                stage = "anchoring"
                anchored_text, anchor_ids, anchor_warnings = self._insert_anchors(working_text, structure)
                warnings.extend(anchor_warnings)
            else:
                logger.warning(
                    f"Analise estrutural falhou ({structure.error}), enviando texto sem ancoras"
                )
                anchored_text, anchor_ids = working_text, []

            stage = "model"
            prompt = build_prompt(anchored_text, task_type, anchor_ids)
            model_options = self._model_options(anchored_text, task_type, options)

            model_result = self.retry_handler.execute(
                lambda: self.client.execute(prompt, model_options),
                retryable=RETRYABLE_ERRORS,
                operation_name=f"LLM {task_type}",
            )

            stage = "parsing"
            parsed = self.parser.parse_with_fallback(
                LlmParsingRequest(
                    raw_response=model_result.content,
                    expected_schema=sections_response_schema(),
                    schema_type=task_type,
                    original_anchors=anchor_ids,
                    validation_rules=["anchors_required"],
                    strict_validation=False,
                )
            )
            warnings.extend(parsed.warnings)
            content_map = parsed.get_anchor_content_map() if parsed.is_valid else {}

            result = ProcessingResult(
                text=anchored_text,
                task_type=task_type,
                anchors_inserted=anchor_ids,
                warnings=warnings,
                structure_result=structure,
                parsed_response=parsed,
                model_result=model_result,
            )

            if not content_map:
                logger.warning(
                    f"Resposta do LLM sem conteudo utilizavel, retornando texto ancorado "
                    f"(erros: {parsed.errors})"
                )
                result.fallback_used = True
                result.elapsed_seconds = time.perf_counter() - start_time
                return result

            stage = "replacement"
            result.text, result.anchors_replaced = self._replace_anchors(
                anchored_text, content_map, task_type, warnings
            )
            if not result.anchors_replaced:
                logger.warning("Nenhuma ancora da resposta existe no texto, retornando texto ancorado")
                result.fallback_used = True
            result.elapsed_seconds = time.perf_counter() - start_time

            logger.info(
                f"Processamento concluido: {len(result.anchors_replaced)}/{len(anchor_ids)} ancoras "
                f"substituidas, {len(warnings)} warnings em {result.elapsed_seconds:.2f}s"
            )
            return result

        except ProcessingError:
            raise
        except Exception as e:
            logger.error(f"Processamento falhou na etapa '{stage}' ({task_type}): {e}")
            raise ProcessingError(
                f"Falha ao processar documento na etapa '{stage}' ({task_type}): {e}",
                task_type=task_type,
                stage=stage,
            ) from e

    # =========================================================================
    # Etapas
    # =========================================================================

    def _insert_anchors(
        self,
        text: str,
        structure: StructureAnalysisResult,
    ) -> tuple[str, list[str], list[str]]:
        """
        Insere a ancora de cada secao junto ao seu conteudo.

        A busca parte de um cursor que so avanca, entao texto repetido
        antes do cursor nunca e reutilizado.
        """
        sections = sorted(flatten_sections(structure.sections), key=lambda s: s.start_position)
        at_start = self.config.anchor_position == "start"

        anchor_ids = []
        warnings = []
        cursor = 0

        for section in sections:
            anchor_id = self.anchor_generator.extract_anchor_id(section.anchor)
            needle = section.content.strip()

            if not anchor_id or not needle:
                warnings.append(f"Secao {section.id} sem ancora ou conteudo, ignorada")
                continue

            index = text.find(needle, cursor)
            if index == -1:
                logger.warning(f"Conteudo da secao {section.id} nao localizado apos posicao {cursor}")
                warnings.append(f"Secao {section.id} nao localizada no texto, ancora ignorada")
                continue

            if at_start:
                insertion = f"{section.anchor}\n"
                text = text[:index] + insertion + text[index:]
                cursor = index + len(insertion) + len(needle)
            else:
                position = index + len(needle)
                insertion = f"\n{section.anchor}"
                text = text[:position] + insertion + text[position:]
                cursor = position + len(insertion)

            anchor_ids.append(anchor_id)

        logger.debug(f"{len(anchor_ids)}/{len(sections)} ancoras inseridas")
        return text, anchor_ids, warnings

    def _model_options(self, text: str, task_type: str, options: dict) -> dict:
        """Modelo e tokens pelo tamanho do texto; options explicitas vencem."""
        resolved = {
            "model": self.config.vllm_model,
            "max_tokens": self.config.default_max_tokens,
            "temperature": self.config.default_temperature,
        }

        if len(text) < self.config.short_text_threshold and task_type == "translation":
            resolved["model"] = self.config.vllm_light_model
            resolved["max_tokens"] = self.config.light_max_tokens
        elif len(text) > self.config.long_text_threshold:
            resolved["max_tokens"] = self.config.long_text_max_tokens

        resolved.update({key: value for key, value in options.items() if value is not None})
        return resolved

    def _replace_anchors(
        self,
        text: str,
        content_map: dict[str, str],
        task_type: str,
        warnings: list[str],
    ) -> tuple[str, list[str]]:
        replaced = []

        for key, content in content_map.items():
            # O modelo as vezes devolve a ancora completa em vez do id
            anchor_id = self.anchor_generator.extract_anchor_id(key) or key.strip()

            try:
                anchor = self.anchor_generator.build_anchor(anchor_id)
                if anchor not in text:
                    warnings.append(f"Ancora {anchor_id} nao encontrada no texto, conteudo ignorado")
                    continue
                text = self.anchor_generator.replace_anchor(text, anchor_id, format_block(content, task_type))
            except ValidationError as e:
                warnings.append(f"Ancora invalida na resposta ({anchor_id!r}): {e}")
                continue

            replaced.append(anchor_id)

        return text, replaced
