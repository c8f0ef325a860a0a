"""Testes do AnchorGenerator."""

import pytest

from docflow.config import Config
from docflow.exceptions import ValidationError
from docflow.structure.anchor_generator import AnchorGenerator, transliterate


@pytest.fixture
def generator(test_config):
    return AnchorGenerator(test_config)


class TestGenerate:
    """Geracao de ancoras."""

    def test_formato_basico(self, generator):
        """Ancora deve ter prefixo, id da secao, titulo normalizado e sufixo."""
        anchor = generator.generate("section_001", "Objeto do Contrato")
        assert anchor == "<!-- SECTION_ANCHOR_section_001_objeto_do_contrato -->"

    @pytest.mark.parametrize("title, slug", [
        ("Общие положения", "obschie_polozheniya"),
        ("Договор аренды", "dogovor_arendy"),
        ('Section #1: "Important" (Note)', "section_1_important_note"),
        ("Capítulo Único", "capitulo_unico"),
        ("<b>Objeto</b>", "objeto"),
        ("Prazo - vigencia  e   rescisao", "prazo_vigencia_e_rescisao"),
    ])
    def test_normalizacao_do_titulo(self, generator, title, slug):
        """Transliteracao, remocao de pontuacao e snake_case."""
        anchor = generator.generate("sec", title)
        assert generator.extract_anchor_id(anchor) == f"sec_{slug}"

    @pytest.mark.parametrize("title", ["", "   ", "!!!"])
    def test_titulo_vazio_usa_slug_fixo(self, generator, title):
        """Titulo vazio (ou sem caracteres uteis) vira <id>_section."""
        anchor = generator.generate("sec", title)
        assert generator.extract_anchor_id(anchor) == "sec_section"

    def test_truncamento(self, generator):
        """Titulo e truncado no tamanho maximo configurado."""
        anchor = generator.generate("s", "a" * 80)
        assert generator.extract_anchor_id(anchor) == "s_" + "a" * 50

    def test_colisao_recebe_contador(self, generator):
        """Mesmo id/titulo gera sufixos _1, _2..."""
        first = generator.generate("test1", "Title")
        second = generator.generate("test1", "Title")
        third = generator.generate("test1", "Title")

        assert generator.extract_anchor_id(first) == "test1_title"
        assert generator.extract_anchor_id(second) == "test1_title_1"
        assert generator.extract_anchor_id(third) == "test1_title_2"
        assert generator.get_used_anchors() == ["test1_title", "test1_title_1", "test1_title_2"]

    def test_generate_batch_mantem_unicidade(self, generator):
        anchors = generator.generate_batch({"a": "Objeto", "b": "Objeto"})

        assert set(anchors) == {"a", "b"}
        assert anchors["a"] != anchors["b"]
        assert len(generator.get_used_anchors()) == 2

    def test_reset_limpa_ledger(self, generator):
        """Apos reset o mesmo slug pode ser emitido de novo."""
        first = generator.generate("x", "Titulo")
        generator.reset_used_anchors()

        assert generator.get_used_anchors() == []
        assert generator.generate("x", "Titulo") == first

    def test_id_invalido(self, generator):
        with pytest.raises(ValidationError):
            generator.generate("sec 1", "Titulo")

        with pytest.raises(ValidationError):
            generator.generate("", "Titulo")

    def test_titulo_invalido(self, generator):
        with pytest.raises(ValidationError):
            generator.generate("sec", "Titulo\x00")

        with pytest.raises(ValidationError):
            generator.generate("sec", "x" * 1001)


class TestConfiguracao:
    """Opcoes vindas do Config."""

    def test_prefixo_e_sufixo_customizados(self):
        generator = AnchorGenerator(Config(anchor_prefix="[[", anchor_suffix="]]"))
        anchor = generator.generate("sec", "Objeto")

        assert anchor == "[[sec_objeto]]"
        assert generator.extract_anchor_id(anchor) == "sec_objeto"

    def test_sem_transliteracao(self):
        generator = AnchorGenerator(Config(anchor_transliteration=False))
        anchor = generator.generate("sec", "Общие")
        assert generator.extract_anchor_id(anchor) == "sec_общие"

    def test_sem_normalizacao_de_caixa(self):
        generator = AnchorGenerator(Config(anchor_normalize_case=False))
        anchor = generator.generate("sec", "Objeto Principal")
        assert generator.extract_anchor_id(anchor) == "sec_Objeto_Principal"

    def test_transliterate(self):
        assert transliterate("Щука") == "Schuka"
        assert transliterate("ação") == "acao"


class TestLeituraEEdicao:
    """Localizacao e manipulacao de ancoras no texto."""

    def test_extract_anchor_id_roundtrip(self, generator):
        anchor = generator.generate("section_003", "Disposicoes Finais")
        assert generator.extract_anchor_id(anchor) == "section_003_disposicoes_finais"

    @pytest.mark.parametrize("text", [
        "nao e ancora",
        "<!-- SECTION_ANCHOR_x -->extra",
        "prefixo <!-- SECTION_ANCHOR_x -->",
        "<!-- SECTION_ANCHOR_x",
    ])
    def test_extract_anchor_id_rejeita_texto_fora_da_gramatica(self, generator, text):
        assert generator.extract_anchor_id(text) is None
        assert generator.is_valid_anchor(text) is False

    def test_find_anchors_em_ordem(self, generator):
        a = generator.build_anchor("a")
        b = generator.build_anchor("b")
        text = f"inicio {b} meio {a} fim {b}"

        assert generator.find_anchors_in_text(text) == [b, a, b]

    def test_replace_apenas_primeira_ocorrencia(self, generator):
        anchor = generator.build_anchor("x")
        text = f"{anchor} e {anchor}"

        assert generator.replace_anchor(text, "x", "NOVO") == f"NOVO e {anchor}"

    def test_insert_after_e_remove(self, generator):
        anchor = generator.build_anchor("x")
        text = f"A\n{anchor}\nB"

        inserted = generator.insert_after_anchor(text, "x", "NOVO")
        assert inserted == f"A\n{anchor}\nNOVO\nB"

        assert generator.remove_anchor(inserted, "x") == "A\n\nNOVO\nB"

    def test_operacoes_sem_ancora_nao_alteram_texto(self, generator):
        text = "texto sem ancoras"

        assert generator.replace_anchor(text, "x", "NOVO") == text
        assert generator.insert_after_anchor(text, "x", "NOVO") == text
        assert generator.remove_anchor(text, "x") == text

    def test_id_invalido_na_edicao(self, generator):
        with pytest.raises(ValidationError):
            generator.replace_anchor("texto", "id invalido", "x")

    def test_texto_grande_demais_para_busca(self, generator):
        with pytest.raises(ValidationError):
            generator.find_anchors_in_text("a" * 1_000_001)
