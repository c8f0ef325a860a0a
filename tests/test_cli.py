"""Testes da linha de comando."""

import json
from unittest.mock import patch

import pytest

from docflow.cli import build_parser, main
from docflow.exceptions import ProcessingError
from docflow.processing.document_processor import ProcessingResult


@pytest.fixture
def contract_file(tmp_path, sample_text):
    path = tmp_path / "contrato.txt"
    path.write_text(sample_text, encoding="utf-8")
    return path


class TestAnalyze:

    def test_imprime_json_da_analise(self, contract_file, capsys):
        exit_code = main(["analyze", str(contract_file)])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["is_successful"] is True
        assert output["sections_count"] == 2
        assert output["statistics"]["total_sections"] == 3
        assert len(output["anchors"]) == 3

    def test_documento_invalido_retorna_1(self, tmp_path, capsys):
        path = tmp_path / "curto.txt"
        path.write_text("curto", encoding="utf-8")

        exit_code = main(["analyze", str(path)])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert "validation_error" in output["metadata"]


class TestProcess:

    def test_escreve_saida(self, contract_file, tmp_path):
        output_path = tmp_path / "saida.txt"

        with patch("docflow.cli.DocumentProcessor") as processor_cls:
            processor = processor_cls.return_value
            processor.process_with_report.return_value = ProcessingResult(
                text="texto processado", task_type="contradiction", warnings=["aviso"]
            )

            exit_code = main([
                "process", str(contract_file),
                "--task", "contradiction",
                "--model", "modelo-x",
                "--output", str(output_path),
            ])

        assert exit_code == 0
        assert output_path.read_text(encoding="utf-8") == "texto processado"

        _, kwargs = processor.process_with_report.call_args
        assert kwargs["task_type"] == "contradiction"
        assert kwargs["options"] == {"model": "modelo-x", "max_tokens": None}
        processor.client.close.assert_called_once()

    def test_stdout_sem_output(self, contract_file, capsys):
        with patch("docflow.cli.DocumentProcessor") as processor_cls:
            processor_cls.return_value.process_with_report.return_value = ProcessingResult(
                text="resultado", task_type="translation"
            )

            exit_code = main(["process", str(contract_file), "--max-tokens", "500"])

        assert exit_code == 0
        assert capsys.readouterr().out.strip() == "resultado"

    def test_erro_de_processamento_retorna_1(self, contract_file):
        with patch("docflow.cli.DocumentProcessor") as processor_cls:
            processor = processor_cls.return_value
            processor.process_with_report.side_effect = ProcessingError(
                "falhou", task_type="translation", stage="model"
            )

            exit_code = main(["process", str(contract_file)])

        assert exit_code == 1
        processor.client.close.assert_called_once()


class TestParser:

    def test_comando_obrigatorio(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_defaults_do_process(self):
        args = build_parser().parse_args(["process", "a.txt"])

        assert args.task == "translation"
        assert args.model is None
        assert args.max_tokens is None
        assert args.output is None
