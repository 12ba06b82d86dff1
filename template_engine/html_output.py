"""
HTML Output - Ajuste del HTML/XHTML producido por el conversor

Inserta las hojas de estilo y scripts del usuario en <head>, limpia los
atributos de idioma y, para HTML y correo, convierte el XHTML del conversor en
HTML5 sencillo. El formato 'mail' termina pasando los estilos a línea.
"""

import re
from typing import List, Optional

from jinja2 import BaseLoader, Environment

from template_engine.css_inliner import inline_css
from template_engine.utils import setup_logger

logger = setup_logger(__name__)

_HEAD_ASSETS_TEMPLATE = (
    '{% for url in style_sheets %}'
    '<link rel="stylesheet" type="text/css" href="{{ url | e }}" />'
    '{% endfor %}'
    '{% for url in scripts %}'
    '<script type="text/javascript" src="{{ url | e }}"></script>'
    '{% endfor %}'
    '{% for text in embedded_style_sheets %}'
    '<style type="text/css">{{ text }}</style>'
    '{% endfor %}'
    '{% for text in embedded_scripts %}'
    '<script type="text/javascript">{{ text }}</script>'
    '{% endfor %}'
)

_jinja_env = Environment(loader=BaseLoader())


class HeadAssets:
    """Hojas de estilo y scripts a insertar en <head>."""

    def __init__(self):
        self.style_sheets: List[str] = []
        self.scripts: List[str] = []
        self.embedded_style_sheets: List[str] = []
        self.embedded_scripts: List[str] = []

    def is_empty(self) -> bool:
        return not (self.style_sheets or self.scripts or
                    self.embedded_style_sheets or self.embedded_scripts)

    def render(self) -> str:
        template = _jinja_env.from_string(_HEAD_ASSETS_TEMPLATE)
        return template.render(
            style_sheets=self.style_sheets,
            scripts=self.scripts,
            embedded_style_sheets=self.embedded_style_sheets,
            embedded_scripts=self.embedded_scripts,
        )


def _strip_in_tags(pattern: 're.Pattern', contents: str) -> str:
    """Elimina `pattern` dentro de cada etiqueta de apertura."""
    return re.sub(r'<[^>]+>', lambda m: pattern.sub('', m.group(0)), contents)


def remove_non_printable(contents: str) -> str:
    return ''.join(ch for ch in contents if ch.isprintable() or ch.isspace())


def replace_data_images(contents: str) -> str:
    """Sustituye las imágenes incrustadas (data:) por comentarios numerados."""
    counter = 0

    def placeholder(match):
        nonlocal counter
        counter += 1
        return f'<!--[image_{counter}]-->'

    return re.sub(r'<img[^>]+\bsrc\s*=\s*[\'"]data:[^>]+>', placeholder, contents, flags=re.I)


def postprocess_html(contents: str, fmt: str, assets: Optional[HeadAssets] = None) -> str:
    """
    Ajusta el HTML generado por el conversor.

    Args:
        contents: Documento devuelto por el conversor
        fmt: 'html', 'xhtml' o 'mail'
        assets: Recursos a insertar en <head> (opcional)

    Returns:
        Documento ajustado
    """
    if assets is not None and not assets.is_empty():
        rendered = assets.render()
        contents = re.sub(r'</head\s*>', lambda m: rendered + m.group(0), contents, count=1, flags=re.I)

    contents = _strip_in_tags(re.compile(r'\b(?:xml:)?lang\s*=\s*(["\'])[^>]*?\1\s*', re.I), contents)
    contents = re.sub(r'<meta[^>]+\bDCTERMS\.language[^>]*>', '', contents, flags=re.I)
    contents = remove_non_printable(contents)

    if fmt == 'xhtml':
        return contents

    if '<?xml' in contents.lower():
        contents = re.sub(r'<\?xml.+?(<html)', '<!DOCTYPE HTML>\n\\1', contents, count=1, flags=re.I | re.S)
        contents = _strip_in_tags(re.compile(r'\bxmlns\s*=\s*(["\'])[^>]*?\1\s*', re.I), contents)
        contents = _strip_in_tags(re.compile(r'\bxml:', re.I), contents)
        contents = re.sub(r'<meta[^>]+\bcontent-type[^>]+>',
                          '<meta name="content-type" content="text/html" />', contents, flags=re.I)
        contents = re.sub(r'<meta[^>]+\bcharset[^>]*>', '', contents, flags=re.I)
        contents = re.sub(r'(<head\b[^>]*>)', r'\1<meta charset="utf8" />', contents, count=1, flags=re.I)
        contents = re.sub(r'(<h\b)([^>]*>.*?</h)(\b\s*>)', r'\g<1>1\g<2>1\g<3>', contents, flags=re.I)

    if fmt == 'mail':
        contents = re.sub(r'<!--.*?-->', '', contents, flags=re.S)
        contents = replace_data_images(contents)
        contents = re.sub(r'<(link|meta)(?![^>]+(content-type|charset))[^>]*>', '', contents, flags=re.I | re.S)
        contents = _strip_in_tags(re.compile(r'\bprofile\s*=\s*(["\'])[^>]*?\1\s*', re.I), contents)
        contents = inline_css(contents)

    return contents
