"""
Hierarquia de excecoes do pipeline.

Politica:
- ValidationError / AnalysisError: absorvidos pelo StructureAnalyzer
  (viram warnings e metadata do resultado).
- ParsingError: absorvido pelo LlmResponseParser (is_valid=False).
- ProcessingError: unica excecao que o DocumentProcessor propaga.

Erros do provedor LLM ficam em docflow.llm.exceptions.
"""


class DocflowError(Exception):
    """Erro base do docflow."""
    pass


class ValidationError(DocflowError, ValueError):
    """Entrada invalida (documento, batch, ancora, titulo, confianca)."""
    pass


class AnalysisError(DocflowError):
    """Falha do detector de secoes durante a analise estrutural."""
    pass


class ParsingError(DocflowError):
    """Resposta do LLM inutilizavel mesmo apos reparo do JSON."""
    pass


class ProcessingError(DocflowError):
    """Falha nao tratada no pipeline de processamento do documento."""

    def __init__(self, message: str, task_type: str = "", stage: str = ""):
        super().__init__(message)
        self.task_type = task_type
        self.stage = stage
