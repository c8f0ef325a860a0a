"""
Modulo de analise estrutural.

Secoes detectadas -> floresta hierarquica com ancoras unicas.
"""

from .anchor_generator import AnchorGenerator
from .input_validator import InputValidator
from .section_detector import SectionDetector
from .section_models import DocumentSection, StructureAnalysisResult, flatten_sections
from .structure_analyzer import StructureAnalyzer

__all__ = [
    "AnchorGenerator",
    "InputValidator",
    "SectionDetector",
    "DocumentSection",
    "StructureAnalysisResult",
    "flatten_sections",
    "StructureAnalyzer",
]
