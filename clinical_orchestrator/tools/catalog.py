"""Default clinical tool catalog."""

from typing import Optional

from .registry import ClinicalDomain, ToolCategory, ToolDescriptor, ToolRegistry


def _schema(name: str, description: str, properties: dict, required: list[str]) -> dict:
    return {
        "name": name,
        "description": description,
        "input_schema": {
            "type": "object",
            "properties": properties,
            "required": required,
        },
    }


def _string(description: str, enum: Optional[list[str]] = None) -> dict:
    prop = {"type": "string", "description": description}
    if enum:
        prop["enum"] = enum
    return prop


def default_tools() -> list[ToolDescriptor]:
    """Build the descriptors shipped with the system, in registration order."""
    return [
        ToolDescriptor(
            id="formulate_clarifying_question",
            category=ToolCategory.EMOTIONAL_EXPLORATION,
            priority=9,
            context_keywords=("confuso", "no entiendo", "unclear", "ambiguo", "explicar"),
            applicable_domains=(ClinicalDomain.GENERAL,),
            callable_schema=_schema(
                "formulate_clarifying_question",
                "Genera una pregunta clarificadora específica y empática para "
                "profundizar en la experiencia del consultante.",
                {
                    "clientStatement": _string(
                        "Declaración del consultante que requiere clarificación"
                    ),
                    "emotionalContext": _string("Contexto emocional detectado"),
                    "focusArea": _string(
                        "Área en la que enfocar la clarificación",
                        ["emotions", "thoughts", "behaviors", "relationships", "triggers"],
                    ),
                },
                ["clientStatement", "emotionalContext", "focusArea"],
            ),
        ),
        ToolDescriptor(
            id="identify_core_emotion",
            category=ToolCategory.EMOTIONAL_EXPLORATION,
            priority=8,
            context_keywords=("siento", "emoción", "feeling", "emotional", "mood"),
            applicable_domains=(
                ClinicalDomain.GENERAL,
                ClinicalDomain.ANXIETY,
                ClinicalDomain.DEPRESSION,
            ),
            callable_schema=_schema(
                "identify_core_emotion",
                "Identifica la emoción central de la experiencia del consultante, "
                "distinguiendo emociones primarias y secundarias.",
                {
                    "clientNarrative": _string("Narrativa del consultante"),
                    "behavioralIndicators": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Indicadores conductuales observados o reportados",
                    },
                    "contextualFactors": _string("Factores contextuales relevantes"),
                },
                ["clientNarrative"],
            ),
        ),
        ToolDescriptor(
            id="generate_validating_statement",
            category=ToolCategory.VALIDATION_SUPPORT,
            priority=7,
            context_keywords=("dolor", "difícil", "struggle", "hard", "overwhelming"),
            applicable_domains=(ClinicalDomain.GENERAL, ClinicalDomain.TRAUMA),
            callable_schema=_schema(
                "generate_validating_statement",
                "Crea una declaración de validación empática que reconozca la "
                "experiencia sin minimizarla.",
                {
                    "clientExperience": _string("Experiencia compartida"),
                    "emotionalIntensity": _string(
                        "Intensidad emocional percibida",
                        ["low", "moderate", "high", "severe"],
                    ),
                    "validationType": _string(
                        "Tipo de validación",
                        ["emotional", "experiential", "perspective", "effort"],
                    ),
                },
                ["clientExperience", "emotionalIntensity", "validationType"],
            ),
        ),
        ToolDescriptor(
            id="detect_pattern",
            category=ToolCategory.PATTERN_DETECTION,
            priority=8,
            context_keywords=("siempre", "nunca", "always", "never", "pattern", "repetir"),
            applicable_domains=(
                ClinicalDomain.GENERAL,
                ClinicalDomain.ANXIETY,
                ClinicalDomain.DEPRESSION,
            ),
            callable_schema=_schema(
                "detect_pattern",
                "Identifica patrones recurrentes en pensamientos, emociones o "
                "comportamientos.",
                {
                    "conversationHistory": _string("Historial relevante de la conversación"),
                    "patternType": _string(
                        "Tipo de patrón",
                        ["cognitive", "emotional", "behavioral", "relational", "situational"],
                    ),
                    "timeframe": _string("Marco temporal del patrón"),
                },
                ["conversationHistory", "patternType"],
            ),
        ),
        ToolDescriptor(
            id="reframe_perspective",
            category=ToolCategory.COGNITIVE_ANALYSIS,
            priority=7,
            context_keywords=("terrible", "awful", "disaster", "catastrophe", "hopeless"),
            applicable_domains=(ClinicalDomain.ANXIETY, ClinicalDomain.DEPRESSION),
            callable_schema=_schema(
                "reframe_perspective",
                "Ofrece una perspectiva alternativa equilibrada sin invalidar la "
                "experiencia.",
                {
                    "originalPerspective": _string("Pensamiento original"),
                    "situationalContext": _string("Contexto situacional"),
                    "reframeType": _string(
                        "Tipo de reencuadre",
                        ["balanced", "strength_based", "growth_oriented", "evidence_based"],
                    ),
                },
                ["originalPerspective", "situationalContext", "reframeType"],
            ),
        ),
        ToolDescriptor(
            id="propose_behavioral_experiment",
            category=ToolCategory.BEHAVIORAL_INTERVENTION,
            priority=6,
            context_keywords=("try", "experiment", "practice", "action", "behavior"),
            applicable_domains=(ClinicalDomain.ANXIETY, ClinicalDomain.DEPRESSION),
            callable_schema=_schema(
                "propose_behavioral_experiment",
                "Diseña un experimento conductual medible para poner a prueba "
                "creencias o practicar habilidades.",
                {
                    "targetBelief": _string("Creencia o patrón a examinar"),
                    "clientCapabilities": _string("Capacidades y limitaciones actuales"),
                    "experimentType": _string(
                        "Tipo de experimento",
                        ["exposure", "behavioral_activation", "skill_practice", "reality_testing"],
                    ),
                    "timeframe": _string("Marco temporal propuesto"),
                },
                ["targetBelief", "clientCapabilities", "experimentType"],
            ),
        ),
        ToolDescriptor(
            id="search_academic_web",
            category=ToolCategory.RESEARCH_ACADEMIC,
            priority=5,
            context_keywords=("research", "study", "evidence", "investigación", "estudios"),
            applicable_domains=(ClinicalDomain.GENERAL,),
            callable_schema=_schema(
                "google_search",
                "Busca literatura académica para aportar evidencia científica "
                "sobre técnicas o condiciones clínicas.",
                {
                    "query": _string("Términos de búsqueda académicos"),
                    "clinicalCondition": _string("Condición clínica de interés"),
                    "interventionType": _string("Intervención o técnica terapéutica"),
                },
                ["query"],
            ),
        ),
    ]


def create_default_registry() -> ToolRegistry:
    """Create a registry populated with the default catalog."""
    return ToolRegistry(default_tools())
