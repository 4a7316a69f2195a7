"""Curated clinical vocabulary used to validate extracted entities."""

from ..core.entities import EntityType

KNOWN_ENTITIES: dict[EntityType, list[str]] = {
    EntityType.THERAPEUTIC_TECHNIQUE: [
        "EMDR",
        "TCC",
        "Terapia Cognitivo-Conductual",
        "DBT",
        "ACT",
        "Mindfulness",
        "Exposición",
        "Reestructuración Cognitiva",
        "Terapia Gestalt",
        "Psicoanálisis",
        "Terapia Sistémica",
        "Terapia Narrativa",
        "Hipnoterapia",
        "Biofeedback",
    ],
    EntityType.TARGET_POPULATION: [
        "veteranos",
        "adolescentes",
        "niños",
        "adultos mayores",
        "mujeres víctimas de violencia",
        "personas con discapacidad",
        "refugiados",
        "personal de salud",
        "estudiantes universitarios",
    ],
    EntityType.DISORDER_CONDITION: [
        "TEPT",
        "Depresión Mayor",
        "Trastorno de Ansiedad Generalizada",
        "Trastorno Bipolar",
        "Esquizofrenia",
        "Trastorno Límite de Personalidad",
        "Trastorno Obsesivo-Compulsivo",
        "Fobia Social",
        "Agorafobia",
    ],
    EntityType.DOCUMENTATION_PROCESS: [
        "redacción de notas",
        "notas clínicas",
        "documentación SOAP",
        "resúmenes de sesión",
        "planes de tratamiento",
        "evaluación de progreso",
        "notas de progreso",
        "documentación clínica",
        "formatos de documentación",
        "estructuración de información",
        "ejemplos clínicos",
        "redacción profesional",
    ],
    EntityType.ACADEMIC_VALIDATION: [
        "estudios avalan",
        "qué estudios",
        "investigación respalda",
        "evidencia científica",
        "respaldo empírico",
        "validación científica",
        "metaanálisis",
        "ensayos clínicos",
        "revisión sistemática",
        "literatura científica",
        "papers académicos",
        "evidencia empírica",
        "base científica",
    ],
    EntityType.SOCRATIC_EXPLORATION: [
        "reflexionar",
        "explorar",
        "analizar",
        "cuestionar",
        "insight",
        "autoconocimiento",
        "desarrollo de conciencia",
        "exploración profunda",
        "cuestionamiento socrático",
        "facilitación de insight",
        "análisis introspectivo",
        "exploración de creencias",
        "reflexión crítica",
        "exploración existencial",
    ],
}

SYNONYMS: dict[str, list[str]] = {
    "EMDR": ["Desensibilización y Reprocesamiento por Movimientos Oculares"],
    "TCC": ["Terapia Cognitivo-Conductual", "CBT"],
    "DBT": ["Terapia Dialéctica Conductual"],
    "ACT": ["Terapia de Aceptación y Compromiso"],
    "TEPT": ["Trastorno de Estrés Postraumático", "PTSD"],
    "notas clínicas": ["notas", "documentar", "redactar"],
    "documentación SOAP": ["soap", "formato SOAP", "estructura SOAP"],
    "resúmenes de sesión": ["resumen", "resúmenes", "síntesis de sesión"],
    "planes de tratamiento": ["plan", "planificación", "plan terapéutico"],
    "notas de progreso": ["progreso", "evolución", "seguimiento"],
    "evidencia científica": ["evidencia", "pruebas", "respaldo científico"],
    "metaanálisis": ["meta-análisis", "revisión cuantitativa"],
    "ensayos clínicos": ["ensayos", "trials", "estudios controlados", "RCT"],
    "revisión sistemática": ["systematic review", "literatura"],
    "reflexionar": ["reflexión", "pensar", "meditar"],
    "explorar": ["exploración", "indagar", "examinar"],
    "insight": ["comprensión", "entendimiento", "darse cuenta"],
    "cuestionamiento socrático": ["preguntas socráticas", "método socrático", "diálogo socrático"],
}
