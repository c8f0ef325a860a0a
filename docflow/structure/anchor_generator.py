"""
AnchorGenerator - Marcadores unicos de secao embutidos no texto.

Formato:
    <!-- SECTION_ANCHOR_<section_id>_<titulo_normalizado> -->

Exemplo:
    generate("section_002", "Общие положения")
    -> "<!-- SECTION_ANCHOR_section_002_obschie_polozheniya -->"

O gerador guarda um registro (ledger) dos ids ja emitidos para garantir
unicidade (sufixo _1, _2, ... em colisao). O registro e estado da
instancia: deve ser resetado (reset_used_anchors) a cada execucao
independente e nunca compartilhado entre analises concorrentes.
"""

import logging
import re
import unicodedata
from typing import Optional

from ..config import Config, config as default_config
from .input_validator import InputValidator

logger = logging.getLogger(__name__)


EMPTY_TITLE_SLUG = "section"

_RE_HTML_TAG = re.compile(r"<[^>]*>")
_RE_NON_WORD = re.compile(r"[^\w\s-]")
_RE_SEPARATORS = re.compile(r"[\s-]+")

_CYRILLIC_MAP = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d",
    "е": "e", "ё": "yo", "ж": "zh", "з": "z", "и": "i",
    "й": "y", "к": "k", "л": "l", "м": "m", "н": "n",
    "о": "o", "п": "p", "р": "r", "с": "s", "т": "t",
    "у": "u", "ф": "f", "х": "kh", "ц": "ts", "ч": "ch",
    "ш": "sh", "щ": "sch", "ъ": "", "ы": "y", "ь": "",
    "э": "e", "ю": "yu", "я": "ya",
}
# Maiusculas: primeira letra da transliteracao em caixa alta
_CYRILLIC_MAP.update({k.upper(): v.capitalize() for k, v in list(_CYRILLIC_MAP.items())})

_TRANSLITERATION_TABLE = str.maketrans(_CYRILLIC_MAP)


def transliterate(text: str) -> str:
    """Cirilico -> latim e remocao de acentos ("Capítulo" -> "Capitulo")."""
    text = text.translate(_TRANSLITERATION_TABLE)
    text = unicodedata.normalize("NFKD", text)
    return text.encode("ascii", "ignore").decode("ascii")


class AnchorGenerator:
    """
    Gera, localiza e manipula ancoras de secao.

    Usage:
        generator = AnchorGenerator()
        anchor = generator.generate("section_001", "Objeto do contrato")
        anchor_id = generator.extract_anchor_id(anchor)
        text = generator.replace_anchor(text, anchor_id, "novo conteudo")
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or default_config
        self.prefix = self.config.anchor_prefix
        self.suffix = self.config.anchor_suffix
        self.max_title_length = self.config.anchor_max_title_length
        self.transliteration_enabled = self.config.anchor_transliteration
        self.normalize_case_enabled = self.config.anchor_normalize_case

        self._anchor_pattern = re.compile(re.escape(self.prefix) + r"(.*?)" + re.escape(self.suffix))
        self._used_anchors: list[str] = []
        self._used_set: set[str] = set()

    # =========================================================================
    # Geracao
    # =========================================================================

    def generate(self, section_id: str, title: str) -> str:
        """Gera a ancora completa para a secao e registra o id no ledger."""
        InputValidator.validate_anchor_id(section_id)

        # Titulos vazios caem no slug fixo, nao sao validados
        if title and title.strip():
            InputValidator.validate_section_title(title)

        base = f"{section_id}_{self.normalize_title(title)}"
        anchor_id = self._ensure_unique(base)

        self._used_anchors.append(anchor_id)
        self._used_set.add(anchor_id)

        return self.build_anchor(anchor_id)

    def generate_batch(self, sections: dict[str, str]) -> dict[str, str]:
        """{section_id: title} -> {section_id: anchor}, com a mesma garantia de unicidade."""
        return {section_id: self.generate(section_id, title) for section_id, title in sections.items()}

    def build_anchor(self, anchor_id: str) -> str:
        return f"{self.prefix}{anchor_id}{self.suffix}"

    def normalize_title(self, title: str) -> str:
        """Titulo -> snake_case ascii truncado."""
        title = _RE_HTML_TAG.sub("", title or "")

        if len(title) > self.max_title_length:
            title = title[:self.max_title_length]

        if self.transliteration_enabled:
            title = transliterate(title)

        title = _RE_NON_WORD.sub("", title)
        title = _RE_SEPARATORS.sub("_", title).strip("_")

        if self.normalize_case_enabled:
            title = title.lower()

        return title or EMPTY_TITLE_SLUG

    def _ensure_unique(self, base: str) -> str:
        anchor_id = base
        counter = 1
        while anchor_id in self._used_set:
            anchor_id = f"{base}_{counter}"
            counter += 1
        return anchor_id

    # =========================================================================
    # Leitura
    # =========================================================================

    def extract_anchor_id(self, anchor: str) -> Optional[str]:
        """Id da ancora ou None se o texto nao for exatamente uma ancora."""
        match = self._anchor_pattern.fullmatch(anchor)
        return match.group(1) if match else None

    def is_valid_anchor(self, anchor: str) -> bool:
        return self._anchor_pattern.fullmatch(anchor) is not None

    def find_anchors_in_text(self, text: str) -> list[str]:
        """Todas as ancoras do texto, em ordem de ocorrencia."""
        InputValidator.validate_search_text(text)
        return [match.group(0) for match in self._anchor_pattern.finditer(text)]

    # =========================================================================
    # Edicao (primeira ocorrencia)
    # =========================================================================

    def replace_anchor(self, text: str, anchor_id: str, replacement: str) -> str:
        anchor = self._checked_anchor(text, anchor_id)
        return text.replace(anchor, replacement, 1)

    def insert_after_anchor(self, text: str, anchor_id: str, insertion: str) -> str:
        anchor = self._checked_anchor(text, anchor_id)
        return text.replace(anchor, f"{anchor}\n{insertion}", 1)

    def remove_anchor(self, text: str, anchor_id: str) -> str:
        anchor = self._checked_anchor(text, anchor_id)
        return text.replace(anchor, "", 1)

    def _checked_anchor(self, text: str, anchor_id: str) -> str:
        InputValidator.validate_anchor_id(anchor_id)
        InputValidator.validate_search_text(text)
        return self.build_anchor(anchor_id)

    # =========================================================================
    # Ledger
    # =========================================================================

    def reset_used_anchors(self) -> None:
        if self._used_anchors:
            logger.debug(f"Resetando {len(self._used_anchors)} ancoras usadas")
        self._used_anchors = []
        self._used_set = set()

    def get_used_anchors(self) -> list[str]:
        return list(self._used_anchors)
