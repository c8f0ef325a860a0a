"""
Linha de comando do docflow.

    docflow analyze contrato.txt
    docflow process contrato.txt --task translation --output contrato.out.txt
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import config
from .exceptions import DocflowError
from .extraction.text_extractor import TextExtractor
from .processing.document_processor import DocumentProcessor
from .processing.prompts import TASK_TYPES
from .structure.structure_analyzer import StructureAnalyzer

logger = logging.getLogger(__name__)


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def cmd_analyze(args) -> int:
    document = TextExtractor().extract(_read_text(args.file), original_path=args.file)
    result = StructureAnalyzer(config=config).analyze(document)

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2, default=str))
    return 0 if result.is_successful else 1


def cmd_process(args) -> int:
    options = {"model": args.model, "max_tokens": args.max_tokens}
    processor = DocumentProcessor(config=config)

    try:
        report = processor.process_with_report(_read_text(args.file), task_type=args.task, options=options)
    except DocflowError as e:
        logger.error(f"Falha no processamento: {e}")
        return 1
    finally:
        processor.client.close()

    if args.output:
        Path(args.output).write_text(report.text, encoding="utf-8")
        logger.info(f"Resultado salvo em {args.output}")
    else:
        print(report.text)

    for warning in report.warnings:
        logger.warning(warning)

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docflow",
        description="Analise estrutural e processamento de documentos por LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemplos:
    docflow analyze contrato.txt
    docflow process contrato.txt --task translation --output contrato.out.txt
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Mostra logs de debug",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Imprime a analise estrutural em JSON")
    analyze.add_argument("file", help="Arquivo de texto (UTF-8)")
    analyze.set_defaults(handler=cmd_analyze)

    process = subparsers.add_parser("process", help="Executa o pipeline completo contra o vLLM")
    process.add_argument("file", help="Arquivo de texto (UTF-8)")
    process.add_argument(
        "--task",
        default="translation",
        help=f"Tipo de tarefa ({', '.join(TASK_TYPES)} ou outro para analise geral)",
    )
    process.add_argument("--model", help=f"Modelo (default: adaptativo, {config.vllm_model})")
    process.add_argument("--max-tokens", type=int, help="Limite de tokens de saida")
    process.add_argument("--output", "-o", help="Arquivo de saida (default: stdout)")
    process.set_defaults(handler=cmd_process)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
