"""
LlmResponseParser - Resposta livre do modelo -> dados validados.

Etapas de parse():

    raw_response
        │
        ├─ remove ```json ... ``` e isola o primeiro {...}
        ├─ json.loads; se falhar, repair_json() e nova tentativa
        ├─ schema (required + tipos basicos)          -> errors
        ├─ auditoria de ancoras (nao encontradas / inesperadas)
        ├─ regras (anchors_required, confidence_required)
        ├─ normalizacao (espacos, strings numericas)
        └─ metadata base + extrator por schema_type

parse() nunca levanta excecao: falhas viram is_valid=False + errors.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from ..exceptions import ParsingError
from .metadata_extractors import MetadataExtractorManager
from .models import AnchorValidation, LlmParsingRequest, ParsedLlmResponse

logger = logging.getLogger(__name__)


_RE_OPENING_FENCE = re.compile(r"^\s*```(?:json|JSON)?[ \t]*\n?")
_RE_CLOSING_FENCE = re.compile(r"\n?```\s*$")
_RE_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_RE_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_RE_WHITESPACE = re.compile(r"\s+")
_RE_NUMERIC = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_RE_INTEGER = re.compile(r"^\d+$")

_CLOSERS = {"{": "}", "[": "]"}

ANCHOR_NOT_FOUND = "Ancora nao encontrada na resposta"
ANCHOR_UNEXPECTED = "Ancora inesperada na resposta"

# Texto do modelo: sem conversao numerica
TEXT_FIELDS = ("anchor", "content", "translated_content")


def repair_json(text: str) -> Optional[str]:
    """
    Reparo best-effort de JSON truncado.

    Fecha string aberta, fecha {/[ pendentes na ordem inversa de abertura
    e remove virgulas antes de } ou ]. Fechamentos de tipo trocado apenas
    desempilham, sem reassociar (o resultado pode ser semanticamente
    errado). Retorna None se nada mudou.
    """
    stack = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
        elif char in "}]" and stack:
            stack.pop()

    fixed = text
    if in_string:
        fixed += '"'
    fixed += "".join(_CLOSERS[opener] for opener in reversed(stack))
    fixed = _RE_TRAILING_COMMA.sub(r"\1", fixed)

    return fixed if fixed != text else None


def _is_numeric_string(value: str) -> bool:
    return bool(_RE_NUMERIC.match(value))


def _to_number(value: str):
    if "." in value or "e" in value or "E" in value:
        return float(value)
    return int(value)


class LlmResponseParser:
    """
    Parser tolerante de respostas JSON do LLM.

    Usage:
        parser = LlmResponseParser()
        request = LlmParsingRequest.for_translation(raw, ["sec_1", "sec_2"])
        parsed = parser.parse_with_fallback(request)
        content_map = parsed.get_anchor_content_map()
    """

    def __init__(self, metadata_manager: Optional[MetadataExtractorManager] = None):
        self.metadata_manager = metadata_manager or MetadataExtractorManager()

    # =========================================================================
    # API
    # =========================================================================

    def parse(self, request: LlmParsingRequest) -> ParsedLlmResponse:
        warnings: list[str] = []
        errors: list[str] = []

        try:
            data = self.extract_json(request.raw_response)

            if request.expected_schema is not None:
                errors.extend(self._validate_schema(data, request.expected_schema))

            anchor_validation = self._validate_anchors(data, request.original_anchors, request.schema_type)

            rule_errors, rule_warnings = self._apply_rules(data, request.validation_rules)
            errors.extend(rule_errors)
            warnings.extend(rule_warnings)

            normalized = self._normalize(data)
            is_valid = not errors or (not request.strict_validation and bool(normalized))

            return ParsedLlmResponse(
                is_valid=is_valid,
                parsed_data=normalized,
                anchor_validation=anchor_validation,
                warnings=warnings,
                errors=errors,
                schema_type=request.schema_type,
                raw_response=request.raw_response,
                metadata=self._metadata(data, request, warnings),
            )

        except ParsingError as e:
            logger.error(
                f"Parsing JSON falhou: {e} "
                f"(resposta com {len(request.raw_response or '')} caracteres, schema={request.schema_type})"
            )
            return self._failure(request, [f"Parsing JSON falhou: {e}"], warnings)

        except Exception as e:
            logger.error(f"Erro inesperado no LlmResponseParser: {e} (schema={request.schema_type})")
            return self._failure(request, [f"Erro inesperado de parsing: {e}"], warnings)

    def parse_with_fallback(self, request: LlmParsingRequest) -> ParsedLlmResponse:
        """
        parse(); se falhar, refaz sem schema, sem regras e nao-estrito.

        Warnings das duas tentativas sao mantidos; validade e erros vem so
        do fallback.
        """
        primary = self.parse(request)
        if primary.is_successful:
            return primary

        logger.info(
            f"Parsing principal falhou ({len(primary.errors)} erros), "
            f"tentando fallback (schema={request.schema_type})"
        )

        fallback_request = LlmParsingRequest(
            raw_response=request.raw_response,
            expected_schema=None,
            schema_type=request.schema_type,
            original_anchors=request.original_anchors,
            validation_rules=[],
            strict_validation=False,
        )
        fallback = self.parse(fallback_request)

        return ParsedLlmResponse(
            is_valid=fallback.is_valid,
            parsed_data=fallback.parsed_data,
            anchor_validation=fallback.anchor_validation,
            warnings=primary.warnings + fallback.warnings + [
                "Parsing de fallback usado apos falha do parsing principal"
            ],
            errors=fallback.errors,
            schema_type=request.schema_type,
            raw_response=request.raw_response,
            metadata={**fallback.metadata, "fallback_used": True, "primary_errors": primary.errors},
        )

    # =========================================================================
    # Extracao do JSON
    # =========================================================================

    def extract_json(self, response: str) -> dict:
        """
        Raises:
            ParsingError: se nem o texto reparado for um objeto JSON
        """
        # So cercas nas pontas; ``` dentro de strings JSON e conteudo
        clean = _RE_OPENING_FENCE.sub("", response or "")
        clean = _RE_CLOSING_FENCE.sub("", clean).strip()

        match = _RE_JSON_OBJECT.search(clean)
        json_string = match.group(0) if match else clean

        try:
            decoded = json.loads(json_string)
        except json.JSONDecodeError as e:
            fixed = repair_json(json_string)
            if fixed is None:
                raise ParsingError(f"JSON invalido: {e}") from e
            try:
                decoded = json.loads(fixed)
            except json.JSONDecodeError as e2:
                raise ParsingError(f"JSON invalido mesmo apos reparo: {e2}") from e2
            logger.debug("JSON reparado com sucesso")

        if not isinstance(decoded, dict):
            raise ParsingError(f"Resposta nao e um objeto JSON: {type(decoded).__name__}")

        return decoded

    # =========================================================================
    # Schema
    # =========================================================================

    def _validate_schema(self, data: dict, schema: dict) -> list[str]:
        errors = []

        for name in schema.get("required") or []:
            if name not in data:
                errors.append(f"Campo obrigatorio ausente: {name}")

        for name, field_schema in (schema.get("properties") or {}).items():
            if name in data and isinstance(field_schema, dict):
                error = self._validate_type(data[name], field_schema.get("type"), name)
                if error:
                    errors.append(error)

        return errors

    @staticmethod
    def _validate_type(value: Any, expected: Optional[str], name: str) -> Optional[str]:
        if expected is None:
            return None

        is_bool = isinstance(value, bool)
        checks = {
            "string": lambda: isinstance(value, str),
            "number": lambda: (isinstance(value, (int, float)) and not is_bool)
            or (isinstance(value, str) and _is_numeric_string(value.strip())),
            "integer": lambda: (isinstance(value, int) and not is_bool)
            or (isinstance(value, str) and bool(_RE_INTEGER.match(value))),
            "array": lambda: isinstance(value, list),
            "object": lambda: isinstance(value, dict),
            "boolean": lambda: is_bool,
        }

        check = checks.get(expected)
        if check is None or check():
            return None
        return f"Campo '{name}' deve ser {expected}, recebido {type(value).__name__}"

    # =========================================================================
    # Ancoras
    # =========================================================================

    def _validate_anchors(
        self,
        data: dict,
        original_anchors: list[str],
        schema_type: Optional[str],
    ) -> list[AnchorValidation]:
        if not original_anchors:
            return []

        response_anchors = self.extract_anchors(data, schema_type)
        response_set = set(response_anchors)
        original_set = set(original_anchors)

        audit = []
        for anchor in original_anchors:
            found = anchor in response_set
            audit.append(
                AnchorValidation(
                    anchor=anchor,
                    is_valid=found,
                    found_in_response=found,
                    error=None if found else ANCHOR_NOT_FOUND,
                )
            )

        for anchor in response_anchors:
            if anchor not in original_set:
                audit.append(
                    AnchorValidation(
                        anchor=anchor,
                        is_valid=False,
                        found_in_response=True,
                        error=ANCHOR_UNEXPECTED,
                    )
                )

        return audit

    def extract_anchors(self, data: dict, schema_type: Optional[str] = None) -> list[str]:
        """Ids de ancora da resposta, sem repeticao, em ordem de ocorrencia."""
        anchors: list[str] = []

        sections = data.get("sections")
        if isinstance(sections, list):
            anchors = [s["anchor"] for s in sections if isinstance(s, dict) and isinstance(s.get("anchor"), str)]
            return list(dict.fromkeys(anchors))

        # Formatos legados
        if schema_type == "translation":
            for item in data.get("section_translations") or []:
                if isinstance(item, dict) and isinstance(item.get("anchor"), str):
                    anchors.append(item["anchor"])

        elif schema_type in ("contradiction", "ambiguity"):
            for key in ("contradictions_found", "ambiguities_found"):
                for item in data.get(key) or []:
                    if not isinstance(item, dict):
                        continue
                    if isinstance(item.get("anchor"), str):
                        anchors.append(item["anchor"])
                    for location in item.get("locations") or []:
                        if isinstance(location, dict) and isinstance(location.get("anchor"), str):
                            anchors.append(location["anchor"])

        else:
            self._collect_anchors(data, anchors)

        return list(dict.fromkeys(anchors))

    def _collect_anchors(self, data, anchors: list[str]) -> None:
        """Busca recursiva por qualquer chave 'anchor'."""
        items = data.items() if isinstance(data, dict) else enumerate(data)
        for key, value in items:
            if key == "anchor" and isinstance(value, str):
                anchors.append(value)
            elif isinstance(value, (dict, list)):
                self._collect_anchors(value, anchors)

    def _has_anchors(self, data: dict) -> bool:
        anchors: list[str] = []
        self._collect_anchors(data, anchors)
        return bool(anchors)

    # =========================================================================
    # Regras e normalizacao
    # =========================================================================

    def _apply_rules(self, data: dict, rules: list[str]) -> tuple[list[str], list[str]]:
        errors = []
        warnings = []

        for rule in rules:
            if rule == "anchors_required":
                if not self._has_anchors(data):
                    errors.append("Resposta deve conter referencias de ancora")
            elif rule == "confidence_required":
                summary = data.get("analysis_summary")
                has_summary_confidence = isinstance(summary, dict) and summary.get("confidence") is not None
                if data.get("confidence") is None and not has_summary_confidence:
                    warnings.append("Confidence nao encontrado na resposta")
            else:
                logger.debug(f"Regra de validacao desconhecida ignorada: {rule}")

        return errors, warnings

    def _normalize(self, value, keep_text: bool = False):
        """
        Trim + colapso de espacos em strings; strings numericas viram numeros.

        Campos de TEXT_FIELDS nunca sao convertidos ("1.50" continua "1.50").
        """
        if isinstance(value, dict):
            return {key: self._normalize(item, key in TEXT_FIELDS) for key, item in value.items()}
        if isinstance(value, list):
            return [self._normalize(item) for item in value]
        if isinstance(value, str):
            text = _RE_WHITESPACE.sub(" ", value.strip())
            if keep_text or not _is_numeric_string(text):
                return text
            return _to_number(text)
        return value

    # =========================================================================
    # Metadata
    # =========================================================================

    def _metadata(self, data: dict, request: LlmParsingRequest, warnings: list[str]) -> dict:
        base = {
            "response_length": len(request.raw_response or ""),
            "parsed_fields_count": len(data),
            "schema_type": request.schema_type,
            "has_anchors": self._has_anchors(data),
            "anchor_count": len(self.extract_anchors(data, request.schema_type)),
            "parsing_timestamp": datetime.now(timezone.utc).isoformat(),
        }

        # Falha no extrator vira warning
        try:
            extra = self.metadata_manager.extract_metadata(data, request.schema_type)
        except Exception as e:
            logger.warning(f"Extracao de metadata falhou (schema={request.schema_type}): {e}")
            warnings.append(f"Metadata do schema indisponivel: {e}")
            extra = {}

        return {**base, **extra}

    @staticmethod
    def _failure(request: LlmParsingRequest, errors: list[str], warnings: list[str]) -> ParsedLlmResponse:
        return ParsedLlmResponse(
            is_valid=False,
            parsed_data={},
            anchor_validation=[],
            warnings=warnings,
            errors=errors,
            schema_type=request.schema_type,
            raw_response=request.raw_response,
            metadata={
                "response_length": len(request.raw_response or ""),
                "parsing_failed": True,
                "parsing_timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
