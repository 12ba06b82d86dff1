"""
Package - Contenedor .docx (extracción, manifiesto de tipos y reempaquetado)

Extrae la plantilla a un directorio de trabajo privado, clasifica las partes
declaradas en [Content_Types].xml y vuelve a empaquetar el resultado.
"""

import os
import re
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import List, Optional

from lxml import etree

from template_engine.errors import ExtractionFailed, PackageUnreadable, TemplateNotFound
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

CONTENT_TYPES_NAME = '[Content_Types].xml'
CT_NS = 'http://schemas.openxmlformats.org/package/2006/content-types'

# '...wordprocessingml.document.main+xml' -> 'main'
_ROLE_PATTERN = re.compile(r'^.+?\.([^.+]+)[^.]*$')


def content_type_role(content_type: str) -> str:
    """Devuelve el rol de una parte a partir de su content type."""
    return _ROLE_PATTERN.sub(r'\1', content_type or '')


class PartEntry:
    """Entrada del manifiesto: nombre de la parte, content type y ruta en disco."""

    def __init__(self, part_name: str, content_type: str, path: Path):
        self.part_name = part_name
        self.content_type = content_type
        self.path = path

    @property
    def role(self) -> str:
        return content_type_role(self.content_type)

    def __repr__(self):
        return f"PartEntry({self.part_name!r}, role={self.role!r})"


class DocumentPackage:
    """
    Paquete .docx extraído en un directorio de trabajo.

    El directorio `doc_dir` contiene las partes tal y como estaban en el
    archivo; el motor modifica los árboles XML en memoria y `repack()` vuelve
    a comprimir el directorio completo.
    """

    def __init__(self, template_path: Path, tmp_dir: Path, doc_dir: Path):
        self.template_path = Path(template_path)
        self.tmp_dir = Path(tmp_dir)
        self.doc_dir = Path(doc_dir)
        self.parts: List[PartEntry] = []
        self.rels_extension: Optional[str] = None

        self._read_content_types()

    @classmethod
    def extract(cls, template_path: Path, tmp_root: Optional[Path] = None) -> 'DocumentPackage':
        """
        Extrae una plantilla a un directorio temporal nuevo.

        Args:
            template_path: Ruta a la plantilla .docx
            tmp_root: Directorio donde crear el directorio de trabajo (opcional)

        Returns:
            DocumentPackage listo para cargar el modelo
        """
        template_path = Path(template_path)

        if not template_path.exists():
            raise TemplateNotFound(f"Template '{template_path.name}' not found.")

        if tmp_root is not None:
            Path(tmp_root).mkdir(parents=True, exist_ok=True)

        tmp_dir = Path(tempfile.mkdtemp(prefix='temp_wte_', dir=str(tmp_root) if tmp_root else None))
        doc_dir = tmp_dir / 'doc'
        doc_dir.mkdir()

        try:
            with zipfile.ZipFile(template_path, 'r') as zip_ref:
                zip_ref.extractall(doc_dir)
        except (zipfile.BadZipFile, OSError) as e:
            shutil.rmtree(tmp_dir, ignore_errors=True)
            raise ExtractionFailed(f"Unable to extract template '{template_path.name}'.") from e

        logger.info(f"Plantilla extraída: {template_path.name} -> {doc_dir}")

        try:
            return cls(template_path, tmp_dir, doc_dir)
        except PackageUnreadable:
            shutil.rmtree(tmp_dir, ignore_errors=True)
            raise

    def _read_content_types(self):
        """Lee el manifiesto de tipos y registra las partes Override."""
        types_path = self.doc_dir / CONTENT_TYPES_NAME

        try:
            types = etree.parse(str(types_path))
        except (OSError, etree.XMLSyntaxError) as e:
            raise PackageUnreadable(
                f"Unable to process template '{self.template_path.name}'."
            ) from e

        root = types.getroot()

        for override in root.iter(f'{{{CT_NS}}}Override'):
            part_name = override.get('PartName', '')
            path = self.doc_dir / re.sub(r'^[/\\]', '', part_name)
            self.parts.append(PartEntry(part_name, override.get('ContentType', ''), path))

        for default in root.iter(f'{{{CT_NS}}}Default'):
            content_type = default.get('ContentType') or ''
            if 'relationships' in content_type.lower():
                self.rels_extension = default.get('Extension')
                break

        logger.debug(
            f"Manifiesto leído: {len(self.parts)} partes, extensión de relaciones "
            f"'{self.rels_extension}'"
        )

    def parts_with_role(self, role: str) -> List[PartEntry]:
        return [part for part in self.parts if part.role == role]

    def relationships_path_for(self, part_path: Path) -> Optional[Path]:
        """
        Ruta del archivo de relaciones de una parte.

        Convención: subdirectorio hermano '_<ext>' con '<parte>.<ext>'.
        """
        if not self.rels_extension:
            return None

        part_path = Path(part_path)
        ext = self.rels_extension
        return part_path.parent / f'_{ext}' / f'{part_path.name}.{ext}'

    def repack(self, output_path: Path) -> Path:
        """
        Comprime el directorio de trabajo en un nuevo .docx.

        Args:
            output_path: Ruta del archivo a crear

        Returns:
            Ruta del archivo creado
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with zipfile.ZipFile(output_path, 'w', zipfile.ZIP_DEFLATED) as zip_out:
            # El manifiesto de tipos va primero
            zip_out.write(self.doc_dir / CONTENT_TYPES_NAME, CONTENT_TYPES_NAME)

            for root_dir, dirs, files in os.walk(self.doc_dir):
                dirs.sort()
                for file in sorted(files):
                    file_path = Path(root_dir) / file
                    arcname = file_path.relative_to(self.doc_dir).as_posix()
                    if arcname == CONTENT_TYPES_NAME:
                        continue
                    zip_out.write(file_path, arcname)

        logger.info(f"Paquete generado: {output_path}")
        return output_path

    def cleanup(self):
        """Elimina el directorio de trabajo."""
        if self.tmp_dir.exists():
            shutil.rmtree(self.tmp_dir, ignore_errors=True)
