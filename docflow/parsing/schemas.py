"""
Schema da resposta esperada do modelo.

SectionsResponse.model_json_schema() e usado como expected_schema no
parser e como response_format json_schema no vLLM.
"""

from pydantic import BaseModel, Field


class SectionItem(BaseModel):
    """Conteudo produzido pelo modelo para uma ancora."""

    anchor: str = Field(..., description="Id da ancora, exatamente como aparece na lista de ancoras validas")
    content: str = Field(..., description="Conteudo produzido para a secao")
    type: str = Field("translation", description="translation, contradiction, ambiguity ou analysis")


class SectionsResponse(BaseModel):
    """Resposta completa: uma entrada por secao."""

    sections: list[SectionItem] = Field(default_factory=list)


def sections_response_schema() -> dict:
    """JSON Schema com 'sections' obrigatorio."""
    schema = SectionsResponse.model_json_schema()
    schema["required"] = ["sections"]
    return schema
