"""
Modulo de extracao.

A extracao de formatos (PDF/DOCX) e externa; aqui ficam apenas o contrato
ExtractedDocument e o TextExtractor para texto bruto.
"""

from .models import DocumentElement, ExtractedDocument
from .text_extractor import TextExtractor, classify_heading

__all__ = [
    "DocumentElement",
    "ExtractedDocument",
    "TextExtractor",
    "classify_heading",
]
