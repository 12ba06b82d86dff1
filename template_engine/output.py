"""
Output - Cabeceras HTTP para entregar el documento generado

La emisión de la respuesta queda en manos del framework web; aquí solo se
calculan las cabeceras.
"""

from typing import List, Optional
from urllib.parse import quote

CONTENT_TYPES = {
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'pdf': 'application/pdf',
}


def build_output_headers(fmt: str, file_name: Optional[str] = None,
                         is_attachment: Optional[bool] = None) -> List[str]:
    """
    Cabeceras para servir un documento.

    Args:
        fmt: Formato del documento
        file_name: Nombre de descarga (opcional)
        is_attachment: Fuerza attachment/inline. Por defecto docx se descarga
            y pdf se muestra en línea.

    Returns:
        Lista de cabeceras 'Nombre: valor'
    """
    fmt = fmt.lower()
    headers = ['Cache-Control: no-store, no-cache, must-revalidate, max-age=0, no-transform']

    if fmt in CONTENT_TYPES:
        if is_attachment is None:
            is_attachment = fmt == 'docx'

        disposition = 'attachment' if is_attachment else 'inline'
        if file_name:
            disposition += f"; filename=\"{file_name}\";filename*=utf-8''{quote(file_name)};"

        headers.extend([
            f'Content-type: {CONTENT_TYPES[fmt]}',
            f'Content-Disposition: {disposition}',
            'Content-Description: File Transfer',
            'Content-Transfer-Encoding: binary',
        ])
    else:
        headers.append('Content-type: text/html; charset=utf-8')

    return headers
