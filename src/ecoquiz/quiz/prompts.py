"""Prompt templates sent to the text provider."""

from __future__ import annotations

import re

from .models import Question

__all__ = [
    "DEFAULT_TOPIC",
    "SYSTEM_PROMPT",
    "build_question_prompt",
    "build_verification_prompt",
    "is_affirmative",
]

DEFAULT_TOPIC = "reciclaje y los Objetivos de Desarrollo Sostenible (ODS)"

SYSTEM_PROMPT = (
    "Eres un generador de preguntas de opción múltiple para un quiz "
    "educativo. Responde siempre en español y respeta el formato pedido."
)

_QUESTION_TEMPLATE = (
    "Genera una pregunta sobre {topic}, con 4 opciones (A, B, C, D) y la "
    "letra correcta al final.\n"
    "Formato: 'Pregunta? A) ... B) ... C) ... D) ... Respuesta: X'"
)

_VERIFICATION_TEMPLATE = (
    '¿La respuesta "{letter}" es correcta para: "{question}" con opciones '
    "{options}?\n"
    "Respuesta correcta: {answer}. Responde \"Correcto\" o \"Incorrecto\"."
)

_AFFIRMATIVE = frozenset(
    {"correcto", "correcta", "correct", "sí", "si", "yes", "true"}
)
_LEADING_TOKEN_RE = re.compile(r"\w+")


def build_question_prompt(topic: str = DEFAULT_TOPIC) -> str:
    return _QUESTION_TEMPLATE.format(topic=topic.strip() or DEFAULT_TOPIC)


def build_verification_prompt(question: Question, letter: str) -> str:
    options = " ".join(
        f"{key}) {text}" for key, text in question.options.items()
    )
    return _VERIFICATION_TEMPLATE.format(
        letter=letter,
        question=question.text,
        options=options,
        answer=question.correct_letter or "desconocida",
    )


def is_affirmative(response: str | None) -> bool:
    """Return ``True`` when the first word of ``response`` is a yes.

    ``"¡Correcto!"`` and ``"Sí, es correcta"`` count; ``"Incorrecto"`` and an
    empty reply do not.
    """

    match = _LEADING_TOKEN_RE.search(response or "")
    if not match:
        return False
    return match.group(0).lower() in _AFFIRMATIVE
