"""
Utils - Utilidades generales del motor de plantillas

Funciones auxiliares para logging, manejo de paths y nombres de archivo.
"""

import logging
import sys
from pathlib import Path


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura y devuelve un logger con formato estándar.

    Args:
        name: Nombre del logger
        level: Nivel de logging (default: INFO)

    Returns:
        Logger configurado
    """
    logger = logging.getLogger(name)

    # Evitar duplicar handlers si ya existe
    if logger.handlers:
        return logger

    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    return logger


def safe_filename(filename: str) -> str:
    """
    Convierte un string en un nombre de archivo seguro.

    Args:
        filename: Nombre de archivo original

    Returns:
        Nombre de archivo sanitizado
    """
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        filename = filename.replace(char, '_')

    if len(filename) > 200:
        filename = filename[:200]

    return filename.strip()


def ensure_directory(directory: Path) -> Path:
    """
    Asegura que un directorio existe, creándolo si es necesario.

    Args:
        directory: Path al directorio

    Returns:
        El mismo path, ya existente
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def is_absolute_destination(destination: str) -> bool:
    """Indica si un destino de guardado es absoluto (POSIX o unidad Windows)."""
    if destination.startswith('/') or destination.startswith('\\'):
        return True
    # C:\... solo cuenta como absoluto fuera de POSIX
    return Path(destination).is_absolute()

