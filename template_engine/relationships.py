"""
Relationships - Índice de relaciones y resolución de imágenes

Las relaciones (id -> destino) viven en una parte aparte por cada parte con
contenido. Las imágenes (w:drawing) guardan su id de autor en wp:docPr y el id
de relación de su archivo en a:blip/@r:embed; varias copias de una misma
imagen comparten relación y archivo dentro de la misma parte.
"""

import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from lxml import etree

from template_engine.document_model import (
    A_NS,
    PKG_REL_NS,
    R_NS,
    WP_NS,
    DocumentModel,
    Part,
    get_elements,
    w,
)
from template_engine.errors import ImageNotFound, ReplacementImageMissing
from template_engine.placeholders import TOKEN_OPENERS, find_variable_names
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

ImageKey = Tuple[str, str]


class ImageOccurrence:
    """Una aparición de imagen: nodo w:drawing, parte dueña e id de relación."""

    def __init__(self, drawing: etree._Element, part: Part, blip_id: str):
        self.drawing = drawing
        self.part = part
        self.blip_id = blip_id

    @property
    def part_name(self) -> str:
        return self.part.name

    def __repr__(self):
        return f"ImageOccurrence({self.blip_id!r}, {self.part_name!r})"


class RelationshipIndex:
    """
    Relaciones de cada parte con contenido, indexadas por id.

    También registra las relaciones cuyo destino contiene variables
    (enlaces dinámicos) bajo el nombre de la variable en minúsculas.
    """

    def __init__(self, model: DocumentModel):
        self.model = model
        self.elements: Dict[str, Dict[str, etree._Element]] = {}
        self.targets: Dict[str, List[etree._Element]] = {}

        self._build()

    def _build(self):
        for part_name, rels_part in self.model.relationships.items():
            self.elements[part_name] = {}

            for element in rels_part.root.iter(f'{{{PKG_REL_NS}}}Relationship'):
                rel_id = element.get('Id')
                target = element.get('Target') or ''
                self.elements[part_name][rel_id] = element

                if any(opener in target for opener in TOKEN_OPENERS):
                    for name in find_variable_names(target):
                        self.targets.setdefault(name, []).append(element)

        logger.debug(
            f"Relaciones indexadas en {len(self.elements)} partes, "
            f"{len(self.targets)} variables en destinos"
        )

    def get(self, part_name: str, rel_id: str) -> Optional[etree._Element]:
        return self.elements.get(part_name, {}).get(rel_id)

    def remove(self, part_name: str, rel_id: str):
        """Quita una relación de su parte y del índice."""
        element = self.elements.get(part_name, {}).pop(rel_id, None)
        if element is not None and element.getparent() is not None:
            element.getparent().remove(element)

    def targets_for(self, name: str) -> List[etree._Element]:
        return list(self.targets.get(name.lower(), []))

    def target_path(self, part: Part, element: etree._Element) -> Optional[Path]:
        """Archivo al que apunta una relación interna, relativo a su parte."""
        if element.get('TargetMode') == 'External':
            return None
        target = element.get('Target') or ''
        if target.startswith('/'):
            # Destino absoluto dentro del paquete
            root = part.directory
            while root.parent != root and not (root / '[Content_Types].xml').exists():
                root = root.parent
            return root / target.lstrip('/')
        return part.directory / target


class ImageResolver:
    """Mapa perezoso id de autor -> apariciones que comparten archivo."""

    def __init__(self, model: DocumentModel, relationships: RelationshipIndex):
        self.model = model
        self.relationships = relationships
        self._images: Optional[Dict[ImageKey, List[ImageOccurrence]]] = None
        self._blips_map: Dict[str, ImageKey] = {}

    def _build(self):
        self._images = {}

        for part in self.model.content_parts():
            for drawing in get_elements(part.root, w('drawing')):
                doc_pr = next(drawing.iter(f'{{{WP_NS}}}docPr'), None)
                blip = next(drawing.iter(f'{{{A_NS}}}blip'), None)

                # Formas y gráficos sin imagen incrustada
                if doc_pr is None or blip is None:
                    continue

                image_id = doc_pr.get('id')
                blip_id = blip.get(f'{{{R_NS}}}embed')
                key = (blip_id, part.name)

                self._blips_map[image_id] = key
                self._images.setdefault(key, []).append(ImageOccurrence(drawing, part, blip_id))

        logger.debug(f"Imágenes indexadas: {len(self._blips_map)} ids, {len(self._images)} archivos")

    def get_images(self, image_id: Union[int, str]) -> List[ImageOccurrence]:
        """
        Apariciones de la imagen con un id de autor dado.

        Args:
            image_id: Id de la imagen según el numerador de Word

        Returns:
            Lista de apariciones (vacía si no existe)
        """
        if self._images is None:
            self._build()

        key = self._blips_map.get(str(image_id))
        if key is None:
            return []
        return list(self._images.get(key, []))

    def _require_images(self, image_id) -> List[ImageOccurrence]:
        images = self.get_images(image_id)
        if not images:
            raise ImageNotFound(image_id)
        return images

    def replace_image(self, image_id: Union[int, str], replacement: Path):
        """
        Sustituye el archivo de una imagen por otro.

        Todas las apariciones que comparten el archivo cambian a la vez.

        Args:
            image_id: Id de la imagen
            replacement: Ruta de la nueva imagen
        """
        replacement = Path(replacement)
        if not replacement.exists():
            raise ReplacementImageMissing("Replacement image does not exist.")

        for occurrence in self._require_images(image_id):
            element = self.relationships.get(occurrence.part_name, occurrence.blip_id)
            if element is None:
                logger.warning(
                    f"Imagen {image_id}: relación '{occurrence.blip_id}' no encontrada "
                    f"en {occurrence.part_name}"
                )
                continue

            original = self.relationships.target_path(occurrence.part, element)
            if original is not None:
                shutil.copyfile(replacement, original)

        logger.info(f"Imagen {image_id} reemplazada por {replacement.name}")

    def delete_image(self, image_id: Union[int, str]):
        """
        Elimina por completo una imagen: relación, archivo y elementos.

        Args:
            image_id: Id de la imagen
        """
        image_id = str(image_id)

        for occurrence in self._require_images(image_id):
            element = self.relationships.get(occurrence.part_name, occurrence.blip_id)
            if element is not None:
                file_path = self.relationships.target_path(occurrence.part, element)
                self.relationships.remove(occurrence.part_name, occurrence.blip_id)

                if file_path is not None and file_path.exists():
                    file_path.unlink()

            # Se elimina el contenedor del dibujo (el run)
            container = occurrence.drawing.getparent()
            if container is not None and container.getparent() is not None:
                container.getparent().remove(container)

        self._images.pop(self._blips_map.get(image_id), None)
        self._blips_map.pop(image_id, None)

        logger.info(f"Imagen {image_id} eliminada")
