"""
Converter - Conversión del .docx con LibreOffice (soffice --headless)

El conversor es un proceso externo: este módulo solo construye la orden,
prepara el entorno (locale, HOME) y comprueba que el archivo se ha generado.
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from template_engine.errors import ConverterBinaryMissing, ConverterUnavailable
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

DEFAULT_HTML_FILTER = 'XHTML Writer File'


def conversion_target(target_format: str, filter_spec: Optional[str] = None) -> List[str]:
    """
    Argumento --convert-to como lista [extensión, filtro opcional].

    PDF se convierte a 'pdf'; html, xhtml y mail a 'html' con el filtro XHTML
    salvo que se indique otro.
    """
    convert_to = ['pdf' if target_format == 'pdf' else 'html']

    if filter_spec:
        convert_to.append(filter_spec)
    elif target_format != 'pdf':
        convert_to.append(DEFAULT_HTML_FILTER)

    return convert_to


def convert_package(package_path: Path, target_format: str, filter_spec: Optional[str] = None,
                    locale: str = 'C.UTF-8', binary: str = 'soffice',
                    timeout: Optional[float] = None) -> Path:
    """
    Convierte un paquete .docx a otro formato.

    Args:
        package_path: Ruta del .docx a convertir
        target_format: 'pdf', 'html', 'xhtml' o 'mail'
        filter_spec: Filtro de LibreOffice (p.ej. 'HTML:EmbedImages')
        locale: Locale de la conversión
        binary: Ejecutable de LibreOffice
        timeout: Tiempo máximo en segundos (opcional)

    Returns:
        Ruta del archivo convertido (junto al paquete)
    """
    package_path = Path(package_path)
    executable = shutil.which(binary)

    if executable is None:
        raise ConverterBinaryMissing(
            f"You have to install LibreOffice package for conversion from WORD to "
            f"{target_format.upper()}."
        )

    convert_to = conversion_target(target_format, filter_spec)
    out_dir = package_path.parent
    cmd = [
        executable, '--headless',
        '--convert-to', ':'.join(convert_to),
        '--outdir', str(out_dir),
        str(package_path),
    ]

    env = dict(os.environ, LC_ALL=locale, HOME='/tmp')

    logger.info(f"Convirtiendo {package_path.name} a {target_format.upper()}")

    try:
        proc = subprocess.run(cmd, env=env, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as e:
        raise ConverterUnavailable(
            f"Unable to run the converter for conversion from WORD to {target_format.upper()}."
        ) from e

    output = out_dir / f'{package_path.stem}.{convert_to[0]}'

    if proc.returncode != 0 or not output.exists():
        logger.error(f"Salida del conversor: {proc.stderr.strip()}")
        raise ConverterUnavailable(
            f"The converter did not produce a {target_format.upper()} document "
            f"(exit code {proc.returncode})."
        )

    return output
