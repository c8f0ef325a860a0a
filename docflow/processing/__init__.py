"""
Modulo de processamento - orquestracao documento -> LLM -> documento.
"""

from .document_processor import BLOCK_END, BLOCK_START, DocumentProcessor, ProcessingResult, format_block
from .prompts import TASK_TYPES, build_prompt

__all__ = [
    "BLOCK_END",
    "BLOCK_START",
    "DocumentProcessor",
    "ProcessingResult",
    "format_block",
    "TASK_TYPES",
    "build_prompt",
]
