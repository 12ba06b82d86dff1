"""
Word Template Engine - Generación de documentos a partir de plantillas .docx
"""

from template_engine.engine import WordTemplateEngine
from template_engine.errors import ErrorReporter, TemplateEngineError
from template_engine.schema_models import EngineSettings, GenerationJob

__version__ = "1.0.0"
__release_date__ = "20261018"

__all__ = [
    'WordTemplateEngine',
    'TemplateEngineError',
    'ErrorReporter',
    'EngineSettings',
    'GenerationJob',
]
