"""
Prompts por tipo de tarefa.

Todos pedem a mesma resposta:

    {"sections": [{"anchor": "<id>", "content": "...", "type": "<tarefa>"}]}

e listam os ids de ancora validos.
"""

TASK_TYPES = ("translation", "contradiction", "ambiguity")

_RESPONSE_FORMAT = """Responda APENAS com JSON valido, no formato:
{{
  "sections": [
    {{"anchor": "<id da ancora>", "content": "{content_hint}", "type": "{task_type}"}}
  ]
}}"""

_ANCHOR_NOTE = """O documento contem ancoras no formato <!-- SECTION_ANCHOR_<id> -->.
Use no campo "anchor" somente o <id>, exatamente como aparece na lista abaixo.

Ancoras validas: {anchor_list}"""

_INSTRUCTIONS = {
    "translation": (
        "Reescreva o documento juridico abaixo em linguagem simples e clara, secao por secao.",
        "texto reescrito da secao",
        "Produza uma entrada para cada ancora, preservando termos juridicos importantes.",
    ),
    "contradiction": (
        "Analise o documento juridico abaixo em busca de contradicoes entre clausulas.",
        "contradicao encontrada e clausulas envolvidas",
        "Inclua apenas secoes onde houver contradicao.",
    ),
    "ambiguity": (
        "Analise o documento juridico abaixo em busca de trechos ambiguos ou de dupla interpretacao.",
        "ambiguidade encontrada e possiveis interpretacoes",
        "Inclua apenas secoes onde houver ambiguidade.",
    ),
}

_DEFAULT_INSTRUCTION = (
    "Analise o documento juridico abaixo.",
    "resultado da analise da secao",
    "Produza uma entrada para cada secao relevante.",
)


def build_prompt(content: str, task_type: str, anchor_ids: list[str]) -> str:
    """Monta o prompt com o texto ancorado e a lista de ancoras validas."""
    instruction, content_hint, closing = _INSTRUCTIONS.get(task_type, _DEFAULT_INSTRUCTION)
    response_type = task_type if task_type in TASK_TYPES else "analysis"

    parts = [
        instruction,
        f"DOCUMENTO:\n{content}",
    ]

    if anchor_ids:
        parts.append(_ANCHOR_NOTE.format(anchor_list=", ".join(anchor_ids)))

    parts.append(_RESPONSE_FORMAT.format(content_hint=content_hint, task_type=response_type))
    parts.append(closing)

    return "\n\n".join(parts)
