"""
Modulo de parsing das respostas do LLM.
"""

from .metadata_extractors import (
    AnalysisMetadataExtractor,
    BaseMetadataExtractor,
    MetadataExtractorManager,
    TranslationMetadataExtractor,
)
from .models import AnchorValidation, LlmParsingRequest, ParsedLlmResponse
from .response_parser import LlmResponseParser, repair_json
from .schemas import SectionItem, SectionsResponse, sections_response_schema

__all__ = [
    "AnalysisMetadataExtractor",
    "BaseMetadataExtractor",
    "MetadataExtractorManager",
    "TranslationMetadataExtractor",
    "AnchorValidation",
    "LlmParsingRequest",
    "ParsedLlmResponse",
    "LlmResponseParser",
    "repair_json",
    "SectionItem",
    "SectionsResponse",
    "sections_response_schema",
]
