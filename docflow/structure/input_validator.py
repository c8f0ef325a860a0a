"""
Validacao de entradas da analise estrutural e do gerador de ancoras.

Todas as funcoes levantam ValidationError; quem decide se o erro e
absorvido ou propagado e o chamador.
"""

import re

from ..exceptions import ValidationError
from ..extraction.models import ExtractedDocument


MIN_PLAIN_TEXT_LENGTH = 100
MAX_DOCUMENT_SIZE_MB = 50
MAX_ELEMENTS_COUNT = 10000
MAX_TITLE_LENGTH = 1000
MAX_ANCHOR_ID_LENGTH = 255
MAX_TEXT_SEARCH_LENGTH = 1_000_000

_RE_ANCHOR_ID = re.compile(r"^[a-zA-Z0-9_-]+$")

_SUSPICIOUS_PATTERNS = (
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"<iframe[^>]*>", re.IGNORECASE),
    re.compile(r"<object[^>]*>", re.IGNORECASE),
    re.compile(r"<embed[^>]*>", re.IGNORECASE),
)


class InputValidator:
    """Validadores estaticos."""

    @staticmethod
    def validate_document(document: ExtractedDocument) -> None:
        if not document.elements:
            raise ValidationError("Documento deve conter ao menos um elemento")

        if len(document.elements) > MAX_ELEMENTS_COUNT:
            raise ValidationError(
                f"Documento com elementos demais: {len(document.elements)} (max: {MAX_ELEMENTS_COUNT})"
            )

        plain_text = document.plain_text()

        if len(plain_text.strip()) < MIN_PLAIN_TEXT_LENGTH:
            raise ValidationError(
                f"Texto do documento muito curto: {len(plain_text.strip())} caracteres "
                f"(min: {MIN_PLAIN_TEXT_LENGTH})"
            )

        if len(plain_text) > MAX_DOCUMENT_SIZE_MB * 1024 * 1024:
            raise ValidationError(
                f"Documento muito grande: {len(plain_text)} caracteres (max: {MAX_DOCUMENT_SIZE_MB} MB)"
            )

        if InputValidator.contains_suspicious_content(plain_text):
            raise ValidationError("Documento contem conteudo suspeito")

    @staticmethod
    def validate_section_title(title: str) -> None:
        if not title or not title.strip():
            raise ValidationError("Section title nao pode ser vazio")

        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Section title muito longo: {len(title)} caracteres (max: {MAX_TITLE_LENGTH})"
            )

        if "\x00" in title:
            raise ValidationError("Section title contem caracteres invalidos")

    @staticmethod
    def validate_anchor_id(anchor_id: str) -> None:
        if not anchor_id or not anchor_id.strip():
            raise ValidationError("Anchor ID nao pode ser vazio")

        if len(anchor_id) > MAX_ANCHOR_ID_LENGTH:
            raise ValidationError(
                f"Anchor ID muito longo: {len(anchor_id)} caracteres (max: {MAX_ANCHOR_ID_LENGTH})"
            )

        if not _RE_ANCHOR_ID.fullmatch(anchor_id):
            raise ValidationError("Anchor ID so pode conter letras, numeros, underscores e hifens")

    @staticmethod
    def validate_search_text(text: str) -> None:
        if len(text) > MAX_TEXT_SEARCH_LENGTH:
            raise ValidationError(
                f"Texto muito grande para busca: {len(text)} caracteres (max: {MAX_TEXT_SEARCH_LENGTH})"
            )

    @staticmethod
    def validate_confidence(confidence: float) -> None:
        if not 0.0 <= confidence <= 1.0:
            raise ValidationError(f"Confidence deve estar entre 0.0 e 1.0, recebido: {confidence}")

    @staticmethod
    def validate_document_batch(documents, max_batch_size: int = 100) -> None:
        if not isinstance(documents, dict):
            raise ValidationError("Batch de documentos deve ser um dict {chave: ExtractedDocument}")

        if not documents:
            raise ValidationError("Batch de documentos nao pode ser vazio")

        if len(documents) > max_batch_size:
            raise ValidationError(
                f"Batch muito grande: {len(documents)} documentos (max: {max_batch_size})"
            )

        for key, document in documents.items():
            if not isinstance(document, ExtractedDocument):
                raise ValidationError(
                    f"Documento invalido na chave '{key}': deve ser ExtractedDocument"
                )

    @staticmethod
    def contains_suspicious_content(content: str) -> bool:
        return any(pattern.search(content) for pattern in _SUSPICIOUS_PATTERNS)
