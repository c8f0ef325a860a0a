"""
Testes do DocumentProcessor.

O LLM e substituido por um FakeClient que le as ancoras do prompt e
responde no formato {"sections": [...]}.
"""

import json
import re
from unittest.mock import Mock

import pytest

from docflow.config import Config
from docflow.exceptions import ProcessingError
from docflow.llm.exceptions import LLMError, RateLimitError
from docflow.llm.retry_handler import RetryHandler
from docflow.llm.vllm_client import ModelResult
from docflow.processing.document_processor import BLOCK_END, BLOCK_START, DocumentProcessor, format_block
from docflow.processing.prompts import build_prompt
from docflow.structure.anchor_generator import AnchorGenerator
from docflow.structure.section_models import DocumentSection, StructureAnalysisResult


RE_PROMPT_ANCHOR = re.compile(r"<!-- SECTION_ANCHOR_([A-Za-z0-9_-]+) -->")


class FakeClient:
    """Responde uma secao por ancora encontrada no prompt."""

    def __init__(self, response=None):
        self.response = response
        self.calls = []

    def execute(self, prompt, options=None):
        self.calls.append((prompt, options))

        if self.response is not None:
            return ModelResult(content=self.response)

        anchors = list(dict.fromkeys(RE_PROMPT_ANCHOR.findall(prompt)))
        body = {
            "sections": [
                {"anchor": anchor, "content": f"Versao simples de {anchor}", "type": "translation"}
                for anchor in anchors
            ]
        }
        return ModelResult(content=json.dumps(body), tokens=42)


def make_processor(client=None, config=None, **kwargs):
    return DocumentProcessor(
        client=client or FakeClient(),
        retry_handler=RetryHandler(sleep=lambda seconds: None),
        config=config or Config(),
        **kwargs,
    )


class TestPipelineCompleto:
    """Documento -> ancoras -> LLM -> blocos."""

    def test_traducao_substitui_todas_as_ancoras(self, sample_text):
        client = FakeClient()
        processor = make_processor(client)

        report = processor.process_with_report(sample_text, task_type="translation")

        assert report.anchors_inserted == [
            "section_001_contrato_de_prestacao_de_servicos",
            "section_002_objeto",
            "section_003_disposicoes_finais",
        ]
        assert report.anchors_replaced == report.anchors_inserted
        assert "SECTION_ANCHOR_" not in report.text
        assert report.text.count(BLOCK_START) == 3
        assert report.text.count(BLOCK_END) == 3
        assert not report.fallback_used

        positions = [report.text.index(f"Versao simples de {a}") for a in report.anchors_inserted]
        assert positions == sorted(positions)

    def test_texto_original_preservado_em_volta_dos_blocos(self, sample_text):
        text = make_processor().process(sample_text)

        assert text.startswith("# Contrato de Prestacao de Servicos\n\nEste contrato regula")
        assert format_block("Versao simples de section_002_objeto", "translation") in text

    def test_prompt_lista_ancoras_validas(self, sample_text):
        client = FakeClient()
        make_processor(client).process(sample_text)

        prompt = client.calls[0][0]
        assert "Ancoras validas: section_001_contrato_de_prestacao_de_servicos, section_002_objeto" in prompt
        assert sample_text.split("\n")[0] in prompt

    def test_modelo_leve_para_traducao_curta(self, sample_text):
        client = FakeClient()
        config = Config()

        make_processor(client, config).process(sample_text, task_type="translation")

        options = client.calls[0][1]
        assert options["model"] == config.vllm_light_model
        assert options["max_tokens"] == config.light_max_tokens

    def test_analise_curta_usa_modelo_padrao(self, sample_text):
        client = FakeClient()
        config = Config()

        make_processor(client, config).process(sample_text, task_type="contradiction")

        assert client.calls[0][1]["model"] == config.vllm_model
        assert client.calls[0][1]["max_tokens"] == config.default_max_tokens

    def test_texto_longo_aumenta_tokens(self, sample_text):
        client = FakeClient()
        config = Config(short_text_threshold=10, long_text_threshold=50)

        make_processor(client, config).process(sample_text)

        assert client.calls[0][1]["model"] == config.vllm_model
        assert client.calls[0][1]["max_tokens"] == config.long_text_max_tokens

    def test_options_do_chamador_vencem(self, sample_text):
        client = FakeClient()

        make_processor(client).process(
            sample_text, options={"model": "meu-modelo", "max_tokens": 99, "temperature": None}
        )

        options = client.calls[0][1]
        assert options["model"] == "meu-modelo"
        assert options["max_tokens"] == 99
        assert options["temperature"] == Config().default_temperature

    def test_ancora_completa_na_resposta_tambem_e_aceita(self, sample_text):
        anchor = "<!-- SECTION_ANCHOR_section_002_objeto -->"
        client = FakeClient(json.dumps({"sections": [{"anchor": anchor, "content": "novo objeto"}]}))

        report = make_processor(client).process_with_report(sample_text)

        assert report.anchors_replaced == ["section_002_objeto"]
        assert format_block("novo objeto", "translation") in report.text
        assert report.text.count("SECTION_ANCHOR_") == 2

    def test_ancora_desconhecida_vira_warning(self, sample_text):
        body = {"sections": [
            {"anchor": "section_002_objeto", "content": "ok"},
            {"anchor": "inventada", "content": "ignorado"},
        ]}
        report = make_processor(FakeClient(json.dumps(body))).process_with_report(sample_text)

        assert report.anchors_replaced == ["section_002_objeto"]
        assert "Ancora inventada nao encontrada no texto, conteudo ignorado" in report.warnings
        assert "ignorado" not in report.text


class TestFallback:
    """Degradacao sem excecao."""

    def test_resposta_inutilizavel_retorna_texto_ancorado(self, sample_text):
        report = make_processor(FakeClient("desculpe, nao sei responder")).process_with_report(sample_text)

        assert report.fallback_used
        assert report.anchors_replaced == []
        assert report.text.count("SECTION_ANCHOR_") == 3
        assert BLOCK_START not in report.text

    def test_documento_curto_vai_sem_ancoras(self):
        client = FakeClient()
        text = "# Curto\n\nPouco texto."

        report = make_processor(client).process_with_report(text)

        assert report.anchors_inserted == []
        assert report.text == text
        assert report.fallback_used
        assert not report.structure_result.is_successful
        assert "Ancoras validas" not in client.calls[0][0]

    def test_analise_falha_e_modelo_inventa_secoes(self):
        """Sem ancoras no texto nada e substituido, mesmo com resposta valida."""
        body = {"sections": [{"anchor": "section_001_curto", "content": "Versao simples"}]}
        text = "# Curto\n\nPouco texto."

        report = make_processor(FakeClient(json.dumps(body))).process_with_report(text)

        assert report.text == text
        assert report.anchors_replaced == []
        assert report.fallback_used
        assert report.parsed_response.is_valid
        assert "Ancora section_001_curto nao encontrada no texto, conteudo ignorado" in report.warnings

    def test_substituicao_parcial_nao_e_fallback(self, sample_text):
        body = {"sections": [{"anchor": "section_002_objeto", "content": "ok"}]}

        report = make_processor(FakeClient(json.dumps(body))).process_with_report(sample_text)

        assert report.anchors_replaced == ["section_002_objeto"]
        assert not report.fallback_used


class TestInsercaoDeAncoras:
    """Posicionamento das ancoras no texto."""

    def test_ancora_no_inicio_da_secao(self, sample_text):
        config = Config(anchor_position="start")
        client = FakeClient("{}")

        report = make_processor(client, config).process_with_report(sample_text)

        assert report.text.startswith(
            "<!-- SECTION_ANCHOR_section_001_contrato_de_prestacao_de_servicos -->\n# Contrato"
        )
        assert "<!-- SECTION_ANCHOR_section_002_objeto -->\n## Objeto" in report.text

    def test_ancora_no_fim_da_secao(self, sample_text):
        report = make_processor(FakeClient("{}")).process_with_report(sample_text)

        assert "durante doze meses.\n<!-- SECTION_ANCHOR_section_002_objeto -->" in report.text

    def test_texto_repetido_usa_cursor(self):
        """Duas secoes com o mesmo conteudo recebem ancoras em ocorrencias distintas."""
        generator = AnchorGenerator(Config())
        text = "Clausula repetida.\n\nClausula repetida."
        first = generator.build_anchor("a_1")
        second = generator.build_anchor("a_2")
        structure = StructureAnalysisResult(
            document_id="doc_teste",
            sections=(
                DocumentSection(
                    id="a", title="A", content="Clausula repetida.", level=1,
                    start_position=0, end_position=18, anchor=first,
                ),
                DocumentSection(
                    id="b", title="B", content="Clausula repetida.", level=1,
                    start_position=20, end_position=38, anchor=second,
                ),
            ),
        )
        analyzer = Mock()
        analyzer.analyze.return_value = structure

        processor = make_processor(FakeClient("{}"), analyzer=analyzer, anchor_generator=generator)
        report = processor.process_with_report(text)

        assert report.text == f"Clausula repetida.\n{first}\n\nClausula repetida.\n{second}"
        assert report.anchors_inserted == ["a_1", "a_2"]

    def test_secao_nao_localizada_gera_warning(self):
        generator = AnchorGenerator(Config())
        structure = StructureAnalysisResult(
            document_id="doc_teste",
            sections=(
                DocumentSection(
                    id="fantasma", title="F", content="Texto que nao existe", level=1,
                    start_position=0, end_position=20, anchor=generator.build_anchor("f"),
                ),
            ),
        )
        analyzer = Mock()
        analyzer.analyze.return_value = structure

        processor = make_processor(FakeClient("{}"), analyzer=analyzer, anchor_generator=generator)
        report = processor.process_with_report("Outro texto completamente diferente.")

        assert report.anchors_inserted == []
        assert "Secao fantasma nao localizada no texto, ancora ignorada" in report.warnings


class TestErros:
    """Falhas nao tratadas viram ProcessingError."""

    def test_erro_definitivo_do_llm(self, sample_text):
        error = LLMError("vLLM retornou HTTP 400")
        client = Mock()
        client.execute.side_effect = error

        with pytest.raises(ProcessingError) as exc_info:
            make_processor(client).process(sample_text, task_type="ambiguity")

        assert exc_info.value.stage == "model"
        assert exc_info.value.task_type == "ambiguity"
        assert exc_info.value.__cause__ is error
        assert client.execute.call_count == 1

    def test_rate_limit_esgota_tentativas(self, sample_text):
        client = Mock()
        client.execute.side_effect = RateLimitError("limite", retry_after=1)

        with pytest.raises(ProcessingError) as exc_info:
            make_processor(client).process(sample_text)

        assert isinstance(exc_info.value.__cause__, RateLimitError)
        assert client.execute.call_count == 3

    def test_falha_na_extracao(self):
        extractor = Mock()
        extractor.extract.side_effect = RuntimeError("arquivo corrompido")

        with pytest.raises(ProcessingError) as exc_info:
            make_processor(extractor=extractor).process("qualquer")

        assert exc_info.value.stage == "extraction"


class TestPrompts:

    def test_prompt_sem_ancoras(self):
        prompt = build_prompt("texto", "translation", [])

        assert "DOCUMENTO:\ntexto" in prompt
        assert "Ancoras validas" not in prompt
        assert '"type": "translation"' in prompt

    def test_tarefa_desconhecida_vira_analysis(self):
        prompt = build_prompt("texto", "resumo", ["a"])

        assert '"type": "analysis"' in prompt
        assert "Ancoras validas: a" in prompt
