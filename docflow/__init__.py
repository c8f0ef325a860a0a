"""
docflow - Analise estrutural de documentos, ancoras de secao e
processamento por LLM com reconciliacao da resposta no texto original.
"""

__version__ = "1.0.0"
