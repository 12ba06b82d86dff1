"""
WordTemplateEngine - Generación de documentos Word a partir de plantillas .docx
================================================================================

Sustituye variables ${nombre} (o ~(nombre)), clona filas de tabla, trunca o
repite secciones, reemplaza o elimina imágenes y guarda el resultado como
DOCX, PDF, HTML, XHTML o HTML adaptado a correo (vía LibreOffice).

Uso:
    with WordTemplateEngine('plantilla.docx') as engine:
        engine.clone_row('qty', 3)
        engine.set_value('qty#1', '2')
        engine.set_value('customer', 'Ada')
        engine.save('/tmp/salida.pdf', 'pdf')

Los párrafos y filas con variables se indexan en la primera consulta. Las
operaciones de sección (use_section, repeat) deben hacerse antes de cualquier
reemplazo, o después de todos, según el documento: el índice no se recalcula.
"""

import functools
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from template_engine.converter import convert_package
from template_engine.document_model import DocumentModel
from template_engine.errors import (
    EmptyDestination,
    ErrorHandler,
    ErrorReporter,
    TemplateEngineError,
    UnsupportedFormat,
)
from template_engine.html_output import HeadAssets, postprocess_html
from template_engine.metadata import DocumentProperties
from template_engine.output import build_output_headers
from template_engine.package import DocumentPackage
from template_engine.placeholders import ALTERNATIVE_SYNTAX, DEFAULT_SYNTAX, PlaceholderIndex
from template_engine.relationships import ImageOccurrence, ImageResolver, RelationshipIndex
from template_engine.rows import clone_row
from template_engine.schema_models import SUPPORTED_FORMATS, EngineSettings
from template_engine.sections import SectionManager
from template_engine.substitution import replace_in_targets, set_value
from template_engine.utils import ensure_directory, is_absolute_destination, safe_filename, setup_logger

logger = setup_logger(__name__)


def reports_errors(method):
    """Encamina los errores del motor por el canal de errores de la sesión."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except TemplateEngineError as error:
            self.reporter.raise_error(error)
    return wrapper


class WordTemplateEngine:
    """
    Sesión de generación sobre una plantilla .docx.

    Cualquier error es fatal para la sesión: se registra, se llama al
    manejador alternativo (si se indicó) y se relanza.
    """

    def __init__(self, template: Union[str, Path], tmp_path: Optional[Union[str, Path]] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 settings: Optional[EngineSettings] = None):
        """
        Args:
            template: Ruta a la plantilla .docx
            tmp_path: Directorio donde crear los archivos de trabajo (opcional)
            error_handler: Función (descripción, código) que sustituye al
                manejador por defecto (opcional)
            settings: Ajustes del motor (opcional)
        """
        self.settings = settings or EngineSettings()
        self.reporter = ErrorReporter(error_handler)
        self.package = None

        tmp_root = tmp_path or self.settings.tmp_dir

        try:
            self.package = DocumentPackage.extract(Path(template), Path(tmp_root) if tmp_root else None)
            self.model = DocumentModel.from_package(self.package)
        except TemplateEngineError as error:
            self.close()
            self.reporter.raise_error(error)

        self.syntax = ALTERNATIVE_SYNTAX if self.settings.alternative_syntax else DEFAULT_SYNTAX
        self.locale = self.settings.locale
        self.output_filter = self.settings.output_filter
        self.assets = HeadAssets()

        self.index = PlaceholderIndex(self.model)
        self.relationships = RelationshipIndex(self.model)
        self.images = ImageResolver(self.model, self.relationships)
        self.sections = SectionManager(self.model)
        self.properties = DocumentProperties(self.model)

        logger.info(f"Plantilla cargada: {Path(template).name}")

    # ==========================================================================
    # CICLO DE VIDA
    # ==========================================================================

    @property
    def tmp_dir(self) -> Path:
        return self.package.tmp_dir

    def close(self):
        """Elimina el directorio de trabajo."""
        if self.package is not None:
            self.package.cleanup()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        if getattr(self, 'package', None) is not None:
            self.package.cleanup()

    # ==========================================================================
    # AJUSTES DE CONVERSIÓN Y HTML
    # ==========================================================================

    def set_locale(self, locale: str):
        """Locale que se establece antes de convertir (por defecto 'C.UTF-8')."""
        self.locale = locale

    def set_output_filter(self, output_filter: str):
        """Filtro de conversión de LibreOffice, p.ej. 'HTML:EmbedImages'."""
        self.output_filter = output_filter

    def embed_style_sheet(self, stylesheet: str):
        self.assets.embedded_style_sheets.append(stylesheet)

    def embed_script(self, script: str):
        self.assets.embedded_scripts.append(script)

    def add_style_sheet(self, url: str):
        self.assets.style_sheets.append(url)

    def add_script(self, url: str):
        self.assets.scripts.append(url)

    # ==========================================================================
    # METADATOS
    # ==========================================================================

    def set_company(self, company_name: str):
        self.properties.set_company(company_name)

    def set_manager(self, manager: str):
        self.properties.set_manager(manager)

    def set_title(self, title: str):
        """Título del documento; también es el título de página en PDF/HTML."""
        self.properties.set_title(title)

    def set_author(self, author: str):
        self.properties.set_author(author)

    def set_time(self, time: Optional[str] = None):
        self.properties.set_time(time)

    def set_subject(self, subject: str):
        self.properties.set_subject(subject)

    def set_keywords(self, keywords: str):
        self.properties.set_keywords(keywords)

    def set_description(self, description: str):
        self.properties.set_description(description)

    def set_category(self, category: str):
        self.properties.set_category(category)

    def set_status(self, content_status: str):
        self.properties.set_status(content_status)

    def drop_meta_data(self):
        self.properties.drop_meta_data()

    # ==========================================================================
    # SECCIONES
    # ==========================================================================

    @reports_errors
    def use_section(self, idx: int):
        """
        Trunca el documento a una sección.

        Llamar antes de cualquier reemplazo: los párrafos y filas se indexan
        una sola vez.
        """
        self.sections.use_section(idx)

    @reports_errors
    def repeat(self, count: int = 1, idx: Optional[int] = None):
        """
        Copia el documento completo, o solo la sección `idx`, al final.

        Args:
            count: Número de copias
            idx: Sección a repetir (opcional)
        """
        self.sections.repeat(count, idx)

    def section_count(self) -> int:
        return self.sections.section_count()

    # ==========================================================================
    # VARIABLES
    # ==========================================================================

    def alternative_syntax(self, enabled: bool):
        """
        Activa la sintaxis ~(nombre) en lugar de ${nombre}.

        Útil para variables dentro de hipervínculos y otros destinos.
        """
        self.syntax = ALTERNATIVE_SYNTAX if enabled else DEFAULT_SYNTAX

    @reports_errors
    def set_value(self, name: str, replacement: Optional[str]):
        """
        Reemplaza la variable `name` por `replacement` en todo el documento.

        Args:
            name: Nombre de la variable (sin distinguir mayúsculas)
            replacement: Valor; None equivale a cadena vacía
        """
        name = name.lower()
        token = self.syntax.token(name)

        count = set_value(self.index.lookup_paragraphs(name), token, replacement)
        count += replace_in_targets(self.relationships.targets_for(name), token, replacement)

        logger.debug(f"Variable '{name}': {count} reemplazos")

    def set_values(self, context: Dict[str, Optional[str]]):
        """Reemplaza varias variables a la vez."""
        for name, replacement in context.items():
            self.set_value(name, replacement)

    @reports_errors
    def clone_row(self, name: str, count: int):
        """
        Clona la fila de tabla que contiene la variable ancla `name`.

        Todas las variables de la fila reciben el sufijo '#<n>': ${key#1},
        ${customer#1}; ${key#2}, ${customer#2}...
        """
        clone_row(self.index, name, count, self.syntax)

    # ==========================================================================
    # IMÁGENES
    # ==========================================================================

    def get_images(self, image_id: Union[int, str]) -> List[ImageOccurrence]:
        return self.images.get_images(image_id)

    @reports_errors
    def replace_image(self, image_id: Union[int, str], replacement: Union[str, Path]):
        """Sustituye el archivo de la imagen con id `image_id` por `replacement`."""
        self.images.replace_image(image_id, Path(replacement))

    @reports_errors
    def delete_image(self, image_id: Union[int, str]):
        """Elimina la imagen: elementos, relación y archivo."""
        self.images.delete_image(image_id)

    # ==========================================================================
    # GUARDADO
    # ==========================================================================

    @reports_errors
    def save(self, destination: Union[str, Path], fmt: str = 'docx') -> Path:
        """
        Crea el documento a partir de la plantilla procesada.

        Args:
            destination: Ruta de destino. Las rutas relativas se resuelven
                dentro del directorio de trabajo.
            fmt: 'docx' (por defecto), 'pdf', 'html', 'xhtml' o 'mail'

        Returns:
            Ruta completa del documento creado
        """
        fmt = fmt.lower()

        if fmt not in SUPPORTED_FORMATS:
            raise UnsupportedFormat(f"Unsupported format '{fmt}'.")

        if not destination or not str(destination).strip():
            raise EmptyDestination("The destination path cannot be empty.")

        destination = str(destination)
        if is_absolute_destination(destination):
            destination = Path(destination)
        else:
            destination = self.tmp_dir / destination

        self.properties.normalize_for_save()
        self.model.save()

        output = self.package.repack(self.tmp_dir / 'output.docx')

        if fmt != 'docx':
            output = convert_package(
                output, fmt, self.output_filter, self.locale,
                self.settings.converter_binary, self.settings.converter_timeout,
            )

            if fmt != 'pdf':
                contents = output.read_text(encoding='utf-8', errors='replace')
                output.write_text(postprocess_html(contents, fmt, self.assets), encoding='utf-8')

        ensure_directory(destination.parent)
        shutil.move(str(output), str(destination))

        logger.info(f"Documento guardado: {destination} ({fmt})")
        return destination

    def output_headers(self, fmt: str = 'docx', file_name: Optional[str] = None,
                       is_attachment: Optional[bool] = None) -> List[str]:
        """Cabeceras HTTP para entregar el documento (vacío si están desactivadas)."""
        if not self.settings.send_output_headers:
            return []
        if file_name:
            file_name = safe_filename(file_name)
        return build_output_headers(fmt, file_name, is_attachment)

    def output(self, fmt: str = 'docx', file_name: Optional[str] = None,
               is_attachment: Optional[bool] = None) -> Tuple[Path, List[str]]:
        """
        Guarda el documento en el directorio de trabajo para entregarlo.

        Returns:
            Tupla (ruta del documento, cabeceras HTTP)
        """
        fmt = fmt.lower()
        source = self.save(f'output.{fmt}', fmt)
        return source, self.output_headers(fmt, file_name, is_attachment)
