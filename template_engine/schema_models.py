"""
Schema Models - Modelos Pydantic para la configuración del motor

Ajustes del motor (directorio temporal, locale, conversor...) y trabajos de
generación descritos en YAML.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_FORMATS = ('docx', 'pdf', 'html', 'xhtml', 'mail')


# ==============================================================================
# AJUSTES DEL MOTOR
# ==============================================================================

class EngineSettings(BaseModel):
    """Ajustes generales de una sesión de generación."""
    tmp_dir: Optional[str] = Field(None, description="Directorio donde crear los archivos de trabajo")
    locale: str = Field("C.UTF-8", description="Locale para la conversión")
    output_filter: Optional[str] = Field(None, description="Filtro de LibreOffice, p.ej. 'HTML:EmbedImages'")
    alternative_syntax: bool = Field(False, description="Usar ~(nombre) en lugar de ${nombre}")
    converter_binary: str = Field("soffice", description="Ejecutable de LibreOffice")
    converter_timeout: Optional[float] = Field(None, description="Tiempo máximo de conversión (s)")
    send_output_headers: bool = Field(True, description="Calcular cabeceras HTTP al entregar")


# ==============================================================================
# TRABAJOS DE GENERACIÓN
# ==============================================================================

class RepeatSpec(BaseModel):
    """Repetición del documento o de una sección."""
    count: int = Field(1, description="Número de copias")
    section: Optional[int] = Field(None, description="Sección a repetir (todo el documento si se omite)")


class ImageOperations(BaseModel):
    """Operaciones sobre imágenes, por id de Word."""
    replace: Dict[str, str] = Field(default_factory=dict, description="id -> ruta de la nueva imagen")
    delete: List[str] = Field(default_factory=list, description="Ids a eliminar")

    @field_validator('replace', mode='before')
    @classmethod
    def stringify_ids(cls, v):
        return {str(k): str(path) for k, path in (v or {}).items()}

    @field_validator('delete', mode='before')
    @classmethod
    def stringify_delete_ids(cls, v):
        return [str(image_id) for image_id in (v or [])]


class DocumentMetadata(BaseModel):
    """Propiedades del documento a establecer."""
    title: Optional[str] = None
    subject: Optional[str] = None
    author: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    company: Optional[str] = None
    manager: Optional[str] = None
    time: Optional[str] = Field(None, description="Fecha ISO 8601 de creación")


class HtmlAssets(BaseModel):
    """Recursos a insertar en <head> de las salidas HTML."""
    style_sheets: List[str] = Field(default_factory=list)
    scripts: List[str] = Field(default_factory=list)
    embedded_style_sheets: List[str] = Field(default_factory=list)
    embedded_scripts: List[str] = Field(default_factory=list)


class GenerationJob(BaseModel):
    """
    Trabajo de generación completo.

    Se aplica en este orden: sección, repetición, clonado de filas, valores,
    imágenes, metadatos y guardado.
    """
    template: str = Field(description="Ruta a la plantilla .docx")
    destination: str = Field(description="Ruta del documento generado")
    format: str = Field("docx", description="docx, pdf, html, xhtml o mail")
    use_section: Optional[int] = Field(None, description="Sección a conservar")
    repeat: Optional[RepeatSpec] = None
    clone_rows: Dict[str, int] = Field(default_factory=dict, description="Variable ancla -> filas")
    values: Dict[str, Optional[str]] = Field(default_factory=dict, description="Variable -> valor")
    images: ImageOperations = Field(default_factory=ImageOperations)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    html: HtmlAssets = Field(default_factory=HtmlAssets)

    model_config = ConfigDict(extra='forbid')

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        v = v.lower()
        if v not in SUPPORTED_FORMATS:
            raise ValueError(f"Formato no soportado: {v}")
        return v

    @field_validator('values', mode='before')
    @classmethod
    def stringify_values(cls, v):
        return {str(k): (None if value is None else str(value)) for k, value in (v or {}).items()}
