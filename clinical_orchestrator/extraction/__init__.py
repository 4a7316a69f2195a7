"""Entity extraction engine and clinical vocabulary."""

from .engine import EntityExtractionEngine
from .functions import EXTRACTION_FUNCTIONS, ExtractionFunction

__all__ = [
    "EXTRACTION_FUNCTIONS",
    "EntityExtractionEngine",
    "ExtractionFunction",
]
