"""
Errors - Taxonomía de errores del motor de plantillas

Cada error lleva un código estable (el mismo que recibe el manejador
alternativo) y es fatal para la sesión de generación en curso: no hay
reintentos ni recuperación parcial.
"""

from typing import Callable, Optional

from template_engine.utils import setup_logger

logger = setup_logger(__name__)

ErrorHandler = Callable[[str, str], None]


class TemplateEngineError(Exception):
    """Error base del motor. `code` es el identificador estable del error."""

    code = 'template_engine_error'

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reported = False
        if code:
            self.code = code


class TemplateNotFound(TemplateEngineError):
    code = 'template_not_found'


class PackageUnreadable(TemplateEngineError):
    code = 'process_error'


class ExtractionFailed(TemplateEngineError):
    code = 'extract_error'


class SectionNotFound(TemplateEngineError):
    code = 'section_not_found'

    def __init__(self, index: int):
        super().__init__(f"Section {index} does not exist.")
        self.index = index


class ImageNotFound(TemplateEngineError):
    code = 'image_not_found'

    def __init__(self, image_id):
        super().__init__(f"Image {image_id} does not exist.")
        self.image_id = image_id


class ReplacementImageMissing(TemplateEngineError):
    code = 'replace_image_not_exists'


class UnsupportedFormat(TemplateEngineError):
    code = 'unsupported_format'


class EmptyDestination(TemplateEngineError):
    code = 'empty_destination'


class ConverterUnavailable(TemplateEngineError):
    code = 'exec_function_disabled'


class ConverterBinaryMissing(TemplateEngineError):
    code = 'libreoffice_not_installed'


class ErrorReporter:
    """
    Canal de errores de una sesión.

    Registra el error, invoca el manejador alternativo si existe y relanza
    siempre la excepción: el control nunca vuelve a la operación que falló.
    """

    def __init__(self, handler: Optional[ErrorHandler] = None):
        self.handler = handler

    def raise_error(self, error: TemplateEngineError):
        if error.reported:
            raise error
        error.reported = True

        logger.error(f"[{error.code}] {error.message}")

        if self.handler is not None:
            self.handler(error.message, error.code)

        raise error
