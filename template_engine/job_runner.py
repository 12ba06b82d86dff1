"""
Job Runner - Ejecución de trabajos de generación descritos en YAML

Aplica un GenerationJob sobre una plantilla en el orden seguro:
sección, repetición, clonado de filas, valores, imágenes, metadatos, guardado.
"""

from pathlib import Path
from typing import Optional

from template_engine.engine import WordTemplateEngine
from template_engine.errors import ErrorHandler
from template_engine.schema_models import EngineSettings, GenerationJob
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

_METADATA_SETTERS = {
    'title': 'set_title',
    'subject': 'set_subject',
    'author': 'set_author',
    'keywords': 'set_keywords',
    'description': 'set_description',
    'category': 'set_category',
    'status': 'set_status',
    'company': 'set_company',
    'manager': 'set_manager',
}


def apply_job(engine: WordTemplateEngine, job: GenerationJob):
    """Aplica sobre una sesión abierta todas las operaciones del trabajo, sin guardar."""
    if job.use_section is not None:
        engine.use_section(job.use_section)

    if job.repeat is not None:
        engine.repeat(job.repeat.count, job.repeat.section)

    for name, count in job.clone_rows.items():
        engine.clone_row(name, count)

    engine.set_values(job.values)

    for image_id, path in job.images.replace.items():
        engine.replace_image(image_id, path)

    for image_id in job.images.delete:
        engine.delete_image(image_id)

    for field, setter in _METADATA_SETTERS.items():
        value = getattr(job.metadata, field)
        if value is not None:
            getattr(engine, setter)(value)

    if job.metadata.time is not None:
        engine.set_time(job.metadata.time)

    for url in job.html.style_sheets:
        engine.add_style_sheet(url)
    for url in job.html.scripts:
        engine.add_script(url)
    for stylesheet in job.html.embedded_style_sheets:
        engine.embed_style_sheet(stylesheet)
    for script in job.html.embedded_scripts:
        engine.embed_script(script)


def run_job(job: GenerationJob, settings: Optional[EngineSettings] = None,
            error_handler: Optional[ErrorHandler] = None) -> Path:
    """
    Ejecuta un trabajo de generación completo.

    Args:
        job: Trabajo validado
        settings: Ajustes del motor (opcional)
        error_handler: Manejador alternativo de errores (opcional)

    Returns:
        Ruta del documento generado
    """
    logger.info(f"Ejecutando trabajo: {Path(job.template).name} -> {job.destination}")

    with WordTemplateEngine(job.template, settings=settings, error_handler=error_handler) as engine:
        apply_job(engine, job)
        return engine.save(job.destination, job.format)
