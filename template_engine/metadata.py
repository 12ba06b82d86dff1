"""
Metadata - Propiedades del documento (docProps/core.xml y docProps/app.xml)

Título, autor, fechas y demás propiedades básicas, más Company y Manager de
las propiedades extendidas.
"""

from datetime import datetime
from typing import Optional

from lxml import etree

from template_engine.document_model import DocumentModel, Part
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

DC_NS = 'http://purl.org/dc/elements/1.1/'
DCTERMS_NS = 'http://purl.org/dc/terms/'
CP_NS = 'http://schemas.openxmlformats.org/package/2006/metadata/core-properties'
XSI_NS = 'http://www.w3.org/2001/XMLSchema-instance'
EXTENDED_NS = 'http://schemas.openxmlformats.org/officeDocument/2006/extended-properties'

CORE_NAMESPACES = {
    'title': DC_NS,
    'subject': DC_NS,
    'creator': DC_NS,
    'description': DC_NS,
    'created': DCTERMS_NS,
    'modified': DCTERMS_NS,
    'keywords': CP_NS,
    'lastModifiedBy': CP_NS,
    'revision': CP_NS,
    'lastPrinted': CP_NS,
    'category': CP_NS,
    'contentStatus': CP_NS,
}

W3CDTF_PROPERTIES = ('created', 'modified')


def _remove_local(root: etree._Element, name: str):
    for node in [n for n in root if isinstance(n.tag, str) and etree.QName(n).localname == name]:
        root.remove(node)


class DocumentProperties:
    """Edición de las propiedades básicas y extendidas de un documento."""

    def __init__(self, model: DocumentModel):
        self.model = model

    @property
    def core(self) -> Optional[Part]:
        return self.model.core_properties

    @property
    def extended(self) -> Optional[Part]:
        return self.model.extended_properties

    # ==========================================================================
    # PROPIEDADES BÁSICAS
    # ==========================================================================

    def set_meta_data(self, name: str, value: Optional[str]):
        """
        Establece una propiedad básica. Con None se elimina.

        Args:
            name: Nombre local de la propiedad ('title', 'created'...)
            value: Valor o None
        """
        if self.core is None:
            logger.warning(f"El documento no tiene propiedades básicas; se ignora '{name}'")
            return

        namespace = CORE_NAMESPACES.get(name)
        if namespace is None:
            logger.warning(f"Propiedad básica desconocida: '{name}'")
            return

        root = self.core.root
        _remove_local(root, name)

        if value is None:
            return

        node = etree.SubElement(root, f'{{{namespace}}}{name}')
        node.text = str(value)

        if name in W3CDTF_PROPERTIES:
            node.set(f'{{{XSI_NS}}}type', 'dcterms:W3CDTF')

    def get_meta_data(self, name: str) -> Optional[str]:
        if self.core is None:
            return None
        for node in self.core.root:
            if isinstance(node.tag, str) and etree.QName(node).localname == name:
                return node.text
        return None

    def set_title(self, title: str):
        self.set_meta_data('title', title)

    def set_subject(self, subject: str):
        self.set_meta_data('subject', subject)

    def set_keywords(self, keywords: str):
        self.set_meta_data('keywords', keywords)

    def set_description(self, description: str):
        self.set_meta_data('description', description)

    def set_category(self, category: str):
        self.set_meta_data('category', category)

    def set_status(self, content_status: str):
        self.set_meta_data('contentStatus', content_status)

    def set_author(self, author: str):
        """Define el creador y elimina lastModifiedBy."""
        self.set_meta_data('creator', author)
        self.set_meta_data('lastModifiedBy', None)

    def set_time(self, time: Optional[str] = None):
        """
        Define la fecha de creación y elimina modified y lastPrinted.

        Args:
            time: Fecha ISO 8601. Por defecto, ahora.
        """
        if time is None:
            time = datetime.now().astimezone().isoformat(timespec='seconds')

        self.set_meta_data('created', time)
        self.set_meta_data('modified', None)
        self.set_meta_data('lastPrinted', None)

    # ==========================================================================
    # PROPIEDADES EXTENDIDAS
    # ==========================================================================

    def set_app_data(self, name: str, value: Optional[str]):
        """Establece una propiedad extendida. Con None se elimina."""
        if self.extended is None:
            logger.warning(f"El documento no tiene propiedades extendidas; se ignora '{name}'")
            return

        root = self.extended.root
        _remove_local(root, name)

        if value is None:
            return

        namespace = etree.QName(root).namespace or EXTENDED_NS
        node = etree.SubElement(root, f'{{{namespace}}}{name}')
        node.text = str(value)

    def get_app_data(self, name: str) -> Optional[str]:
        if self.extended is None:
            return None
        for node in self.extended.root:
            if isinstance(node.tag, str) and etree.QName(node).localname == name:
                return node.text
        return None

    def set_company(self, company_name: str):
        self.set_app_data('Company', company_name)

    def set_manager(self, manager: str):
        self.set_app_data('Manager', manager)

    def drop_meta_data(self):
        """
        Elimina todas las propiedades básicas y Company/Manager.

        Después hay que volver a definir fecha, título y autor o el documento
        quedará dañado.
        """
        if self.core is not None:
            root = self.core.root
            for node in list(root):
                root.remove(node)

        self.set_app_data('Company', None)
        self.set_app_data('Manager', None)

    def normalize_for_save(self):
        """Revisión 1, sin fecha de impresión y tiempo de edición cero."""
        self.set_meta_data('revision', '1')
        self.set_meta_data('lastPrinted', None)
        self.set_app_data('TotalTime', '0')
