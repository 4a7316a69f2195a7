"""Prompts, function schemas and fixed texts for the orchestrator."""

import re

from ..core.agents import ClinicalAgent, IntentFunction

INTENT_FUNCTION_SCHEMAS: dict[IntentFunction, dict] = {
    IntentFunction.ACTIVATE_SOCRATIC: {
        "name": IntentFunction.ACTIVATE_SOCRATIC.value,
        "description": (
            "Activar cuando el usuario busca exploración reflexiva, cuestionamiento "
            "socrático, desarrollo de insight terapéutico o análisis de casos "
            'complejos. Ejemplos: "¿Cómo puedo ayudar a mi paciente a reflexionar?", '
            '"Necesito explorar más profundamente este caso", "¿Qué preguntas debería hacer?"'
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "tema_exploracion": {
                    "type": "string",
                    "description": "Tema principal a explorar (ej: resistencia, transferencia)",
                },
                "nivel_profundidad": {
                    "type": "string",
                    "enum": ["superficial", "moderado", "profundo"],
                    "description": "Nivel de profundidad de la exploración",
                },
                "contexto_clinico": {
                    "type": "string",
                    "description": "Contexto clínico específico (opcional)",
                },
            },
            "required": ["tema_exploracion", "nivel_profundidad"],
        },
    },
    IntentFunction.ACTIVATE_CLINICAL: {
        "name": IntentFunction.ACTIVATE_CLINICAL.value,
        "description": (
            "Activar para resúmenes de sesión, documentación clínica, redacción de "
            "notas, planes de tratamiento o evaluaciones de progreso. Ejemplos: "
            '"Necesito un resumen de esta sesión", "Ayúdame a documentar el progreso", '
            '"¿Cómo redactar notas SOAP?"'
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "tipo_resumen": {
                    "type": "string",
                    "enum": [
                        "sesion",
                        "progreso",
                        "evaluacion",
                        "plan_tratamiento",
                        "documentacion_general",
                    ],
                    "description": "Tipo de resumen o documentación requerida",
                },
                "elementos_clave": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Elementos a incluir (objetivos, intervenciones, ...)",
                },
                "formato_requerido": {
                    "type": "string",
                    "enum": ["narrativo", "estructurado", "bullet_points", "profesional"],
                    "description": "Formato preferido",
                },
            },
            "required": ["tipo_resumen"],
        },
    },
    IntentFunction.ACTIVATE_ACADEMIC: {
        "name": IntentFunction.ACTIVATE_ACADEMIC.value,
        "description": (
            "Activar para búsqueda de investigación científica, evidencia empírica, "
            "revisión de literatura, metaanálisis o ensayos clínicos. Ejemplos: "
            '"¿Qué dice la investigación sobre EMDR?", "¿Qué estudios avalan esto?", '
            '"Necesito evidencia científica"'
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "terminos_busqueda": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Términos clave de búsqueda (ej: EMDR, PTSD)",
                },
                "poblacion_objetivo": {
                    "type": "string",
                    "description": "Población de interés (ej: veteranos, adolescentes)",
                },
                "tecnica_terapeutica": {
                    "type": "string",
                    "description": "Técnica o intervención (ej: CBT, DBT, mindfulness)",
                },
                "tipo_evidencia": {
                    "type": "string",
                    "enum": [
                        "meta_analisis",
                        "rct",
                        "estudios_caso",
                        "revisiones_sistematicas",
                        "cualquier",
                    ],
                    "description": "Tipo de evidencia preferida",
                },
            },
            "required": ["terminos_busqueda"],
        },
    },
}

if set(INTENT_FUNCTION_SCHEMAS) != set(IntentFunction):
    raise RuntimeError("Every intent function needs a schema")


INTENT_CLASSIFICATION_PROMPT = """Analiza el siguiente mensaje del usuario y clasifica su intención:

1. Identifica palabras clave relacionadas con:
   - Exploración reflexiva, cuestionamiento, insight → activar_modo_socratico
   - Documentación clínica, resúmenes, notas → activar_modo_clinico
   - Búsqueda de evidencia, investigación, estudios → activar_modo_academico
2. Considera el contexto de la conversación.
3. Selecciona la función más apropiada.

Ejemplos:
- "¿Cómo puedo ayudar a mi paciente a reflexionar sobre su trauma?" → activar_modo_socratico
- "Necesito documentar el progreso de esta sesión" → activar_modo_clinico
- "¿Qué dice la investigación sobre EMDR para veteranos?" → activar_modo_academico
- "Ayúdame a explorar más profundamente este caso" → activar_modo_socratico
- "¿Hay estudios que avalen esta técnica?" → activar_modo_academico

Contexto reciente: {recent_context}

Mensaje del usuario: "{user_input}"

Debes llamar obligatoriamente a una de las funciones disponibles."""


RECOMMENDATIONS_PROMPT = """Eres un asistente de supervisión clínica. Según la siguiente \
orquestación, genera recomendaciones breves para el terapeuta.

Agente seleccionado: {agent}
Herramientas disponibles: {tools}
Temas dominantes de la sesión: {topics}
Último mensaje del usuario: "{user_input}"

Responde únicamente con un objeto JSON con esta forma:
{{"suggested_follow_up": "...", "alternative_approaches": ["..."], "clinical_considerations": ["..."]}}"""


ATTACHMENT_MARKER = (
    "**CONTEXTO PARA ORQUESTACIÓN:** El usuario ha adjuntado {count} archivo(s): {names}"
)


DEFAULT_RECOMMENDATIONS = {
    "suggested_follow_up": "Continúa explorando el tema actual con preguntas abiertas",
    "alternative_approaches": ["Considera un enfoque más estructurado"],
    "clinical_considerations": ["Mantén el foco en los objetivos terapéuticos"],
}

ERROR_RECOMMENDATIONS = {
    "suggested_follow_up": "Intenta reformular tu consulta",
    "alternative_approaches": ["Usa términos más específicos"],
    "clinical_considerations": ["Verifica la conectividad del sistema"],
}


# Explicit mode-switch requests, checked before classification
EXPLICIT_REQUEST_PATTERNS: dict[ClinicalAgent, list[str]] = {
    ClinicalAgent.SOCRATIC: [
        r"activ[ar]* (el )?modo socr[áa]tico",
        r"cambiar? al? (agente )?socr[áa]tico",
        r"(usar|quiero|necesito) (el )?modo socr[áa]tico",
        r"switch to socratic",
        r"activate socratic",
    ],
    ClinicalAgent.CLINICAL: [
        r"activ[ar]* (el )?modo cl[íi]nico",
        r"cambiar? al? (agente )?cl[íi]nico",
        r"(usar|quiero|necesito) (el )?modo cl[íi]nico",
        r"switch to clinical",
        r"activate clinical",
    ],
    ClinicalAgent.ACADEMIC: [
        r"activ[ar]* (el )?modo acad[ée]mico",
        r"cambiar? al? (agente )?acad[ée]mico",
        r"(usar|quiero|necesito) (el )?modo acad[ée]mico",
        r"switch to academic",
        r"activate academic",
    ],
}

COMPILED_EXPLICIT_PATTERNS: dict[ClinicalAgent, list[re.Pattern[str]]] = {
    agent: [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
    for agent, patterns in EXPLICIT_REQUEST_PATTERNS.items()
}
