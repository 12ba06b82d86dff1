"""
Config Loader - Carga de configuración desde YAML

Funciones para cargar los ajustes del motor y los trabajos de generación.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from template_engine.schema_models import EngineSettings, GenerationJob
from template_engine.utils import setup_logger

logger = setup_logger(__name__)


def load_yaml_config(filepath: Path) -> Optional[Dict[str, Any]]:
    """
    Carga un archivo YAML genérico.

    Args:
        filepath: Path al archivo YAML

    Returns:
        Diccionario con el contenido o None si no existe
    """
    filepath = Path(filepath)

    if not filepath.exists():
        logger.warning(f"Archivo no encontrado: {filepath}")
        return None

    with open(filepath, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    logger.debug(f"YAML cargado: {filepath.name}")
    return data or {}


def load_engine_settings(filepath: Optional[Path] = None) -> EngineSettings:
    """
    Carga los ajustes del motor.

    Acepta el archivo con los ajustes en la raíz o bajo la clave 'engine'.
    Sin ruta devuelve los valores por defecto; una ruta inexistente es un error.
    """
    if filepath is None:
        return EngineSettings()

    data = load_yaml_config(filepath)
    if data is None:
        raise FileNotFoundError(f"Ajustes no encontrados: {filepath}")
    if not data:
        return EngineSettings()

    settings = EngineSettings(**data.get('engine', data))
    logger.info(f"Ajustes del motor cargados desde {Path(filepath).name}")
    return settings


def load_job(filepath: Path) -> GenerationJob:
    """
    Carga y valida un trabajo de generación.

    Las rutas relativas (plantilla, destino, imágenes) se resuelven respecto al
    directorio del archivo YAML.

    Args:
        filepath: Path al YAML del trabajo

    Returns:
        GenerationJob validado
    """
    filepath = Path(filepath)
    data = load_yaml_config(filepath)

    if data is None:
        raise FileNotFoundError(f"Trabajo no encontrado: {filepath}")

    job = GenerationJob(**data.get('job', data))
    base_dir = filepath.parent

    def resolve(path: str) -> str:
        candidate = Path(path)
        return str(candidate if candidate.is_absolute() else base_dir / candidate)

    job.template = resolve(job.template)
    job.destination = resolve(job.destination)
    job.images.replace = {image_id: resolve(path) for image_id, path in job.images.replace.items()}

    logger.info(f"Trabajo cargado: {filepath.name} -> {job.destination} ({job.format})")
    return job
