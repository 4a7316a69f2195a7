"""Extraction function schemas and the mapping from payload items to entities."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..core.entities import EntityType


def _items_schema(
    name: str,
    description: str,
    list_field: str,
    properties: dict[str, Any],
    required: list[str],
) -> dict[str, Any]:
    properties = dict(properties)
    properties["confidence"] = {
        "type": "number",
        "minimum": 0,
        "maximum": 1,
        "description": "Confianza de la extracción (0-1)",
    }
    return {
        "name": name,
        "description": description,
        "input_schema": {
            "type": "object",
            "properties": {
                list_field: {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": properties,
                        "required": required + ["confidence"],
                    },
                }
            },
            "required": [list_field],
        },
    }


def _text(description: str, enum: Optional[list[str]] = None) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": "string", "description": description}
    if enum:
        prop["enum"] = enum
    return prop


def _join(*parts: Any) -> Optional[str]:
    values = [str(part) for part in parts if part not in (None, "", [])]
    return " - ".join(values) if values else None


@dataclass(frozen=True)
class ExtractionFunction:
    """One extraction function offered to the capability.

    Attributes:
        schema: Callable schema sent with the prompt.
        list_field: Payload key holding the extracted items.
        entity_type: Type assigned to every item.
        value_field: Item key holding the entity value.
        describe: Builds the entity context from an item.
    """

    schema: dict[str, Any]
    list_field: str
    entity_type: EntityType
    value_field: str
    describe: Callable[[dict], Optional[str]]

    @property
    def name(self) -> str:
        return self.schema["name"]


def _population_context(item: dict) -> Optional[str]:
    characteristics = item.get("characteristics")
    if isinstance(characteristics, list):
        characteristics = ", ".join(str(value) for value in characteristics)
    return item.get("age_range") or characteristics or None


EXTRACTION_FUNCTIONS: list[ExtractionFunction] = [
    ExtractionFunction(
        schema=_items_schema(
            "extract_therapeutic_techniques",
            "Extrae técnicas y enfoques terapéuticos mencionados (EMDR, TCC, DBT, ...).",
            "techniques",
            {
                "name": _text("Nombre de la técnica"),
                "category": _text(
                    "Enfoque",
                    ["cognitivo-conductual", "psicodinámico", "humanístico", "sistémico", "integrativo"],
                ),
                "context": _text("Contexto en que se menciona"),
            },
            ["name", "category"],
        ),
        list_field="techniques",
        entity_type=EntityType.THERAPEUTIC_TECHNIQUE,
        value_field="name",
        describe=lambda item: item.get("context") or item.get("category"),
    ),
    ExtractionFunction(
        schema=_items_schema(
            "extract_target_populations",
            "Extrae poblaciones objetivo (veteranos, adolescentes, adultos mayores, ...).",
            "populations",
            {
                "group": _text("Grupo poblacional"),
                "age_range": _text("Rango de edad"),
                "characteristics": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Características relevantes",
                },
            },
            ["group"],
        ),
        list_field="populations",
        entity_type=EntityType.TARGET_POPULATION,
        value_field="group",
        describe=_population_context,
    ),
    ExtractionFunction(
        schema=_items_schema(
            "extract_disorders_conditions",
            "Extrae trastornos y condiciones clínicas mencionadas.",
            "conditions",
            {
                "name": _text("Nombre del trastorno o condición"),
                "category": _text(
                    "Categoría",
                    ["ansiedad", "depresión", "trauma", "personalidad", "neurocognitivo", "otro"],
                ),
                "severity": _text("Severidad", ["leve", "moderado", "severo", "no_especificado"]),
            },
            ["name", "category"],
        ),
        list_field="conditions",
        entity_type=EntityType.DISORDER_CONDITION,
        value_field="name",
        describe=lambda item: _join(item.get("category"), item.get("severity")),
    ),
    ExtractionFunction(
        schema=_items_schema(
            "extract_documentation_processes",
            "Extrae solicitudes de documentación clínica (notas, resúmenes, formatos SOAP, ...).",
            "processes",
            {
                "process": _text("Proceso de documentación"),
                "format_type": _text(
                    "Formato",
                    ["SOAP", "narrativo", "estructurado", "evaluacion", "plan_tratamiento", "progreso", "otro"],
                ),
                "learning_context": _text(
                    "Contexto de aprendizaje",
                    ["ejemplos", "formatos", "redaccion", "estructuracion", "aprendizaje", "consulta"],
                ),
            },
            ["process", "format_type"],
        ),
        list_field="processes",
        entity_type=EntityType.DOCUMENTATION_PROCESS,
        value_field="process",
        describe=lambda item: _join(item.get("format_type"), item.get("learning_context") or "general"),
    ),
    ExtractionFunction(
        schema=_items_schema(
            "extract_academic_validation",
            "Extrae solicitudes de respaldo académico o evidencia científica.",
            "validations",
            {
                "query_type": _text(
                    "Tipo de consulta",
                    [
                        "estudios_avalan",
                        "evidencia_respalda",
                        "investigacion_valida",
                        "respaldo_cientifico",
                        "validacion_empirica",
                        "metaanalisis",
                        "ensayos_clinicos",
                    ],
                ),
                "subject_matter": _text("Tema sobre el que se busca evidencia"),
                "evidence_level": _text("Nivel de evidencia", ["alta", "media", "baja", "cualquier"]),
                "research_context": _text(
                    "Contexto",
                    ["busqueda_estudios", "validacion_afirmacion", "respaldo_practica", "revision_literatura"],
                ),
            },
            ["query_type", "subject_matter"],
        ),
        list_field="validations",
        entity_type=EntityType.ACADEMIC_VALIDATION,
        value_field="subject_matter",
        describe=lambda item: _join(
            item.get("query_type"),
            item.get("research_context") or "general",
            item.get("evidence_level") or "cualquier",
        ),
    ),
    ExtractionFunction(
        schema=_items_schema(
            "extract_socratic_exploration",
            "Extrae solicitudes de reflexión, exploración o cuestionamiento socrático.",
            "explorations",
            {
                "exploration_type": _text(
                    "Tipo de exploración",
                    [
                        "reflexion_profunda",
                        "cuestionamiento_socratico",
                        "desarrollo_insight",
                        "analisis_introspectivo",
                        "exploracion_creencias",
                        "autoconocimiento",
                    ],
                ),
                "subject_matter": _text("Tema a explorar"),
                "depth_level": _text("Profundidad", ["superficial", "moderado", "profundo"]),
                "exploration_context": _text(
                    "Contexto",
                    ["caso_clinico", "enfoque_terapeutico", "desarrollo_profesional", "analisis_personal"],
                ),
            },
            ["exploration_type", "subject_matter"],
        ),
        list_field="explorations",
        entity_type=EntityType.SOCRATIC_EXPLORATION,
        value_field="subject_matter",
        describe=lambda item: _join(
            item.get("exploration_type"),
            item.get("exploration_context") or "general",
            item.get("depth_level") or "moderado",
        ),
    ),
    ExtractionFunction(
        schema=_items_schema(
            "extract_clinical_concepts",
            "Extrae conceptos clínicos generales (instrumentos, marcos teóricos, procesos).",
            "concepts",
            {
                "concept": _text("Concepto clínico"),
                "type": _text(
                    "Tipo",
                    ["assessment_tool", "intervention", "theoretical_framework", "clinical_process"],
                ),
                "relevance": _text("Relevancia", ["alta", "media", "baja"]),
            },
            ["concept", "type"],
        ),
        list_field="concepts",
        entity_type=EntityType.CLINICAL_CONCEPT,
        value_field="concept",
        describe=lambda item: _join(item.get("type"), item.get("relevance")),
    ),
]

FUNCTIONS_BY_NAME: dict[str, ExtractionFunction] = {
    function.name: function for function in EXTRACTION_FUNCTIONS
}
