from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

import pytest
from lxml import etree

from helpers import SECT_PR, build_docx, paragraph, read_part
from template_engine.engine import WordTemplateEngine
from template_engine.metadata import XSI_NS


def properties(root):
    return {etree.QName(node).localname: node for node in root}


@pytest.fixture
def template(tmp_path):
    return build_docx(tmp_path / 'meta.docx', paragraph('x') + SECT_PR)


def test_core_and_extended_properties(template, tmp_path):
    with WordTemplateEngine(template) as engine:
        engine.set_title('Informe anual')
        engine.set_subject('Cuentas')
        engine.set_keywords('auditoría, 2024')
        engine.set_description('Resumen')
        engine.set_category('Informes')
        engine.set_status('Final')
        engine.set_author('Ada')
        engine.set_company('Nueva S.L.')
        engine.set_manager('Bob')
        out = engine.save(tmp_path / 'out.docx')

    core = properties(read_part(out, 'docProps/core.xml'))
    assert core['title'].text == 'Informe anual'
    assert core['subject'].text == 'Cuentas'
    assert core['keywords'].text == 'auditoría, 2024'
    assert core['description'].text == 'Resumen'
    assert core['category'].text == 'Informes'
    assert core['contentStatus'].text == 'Final'
    assert core['creator'].text == 'Ada'
    assert 'lastModifiedBy' not in core

    app = properties(read_part(out, 'docProps/app.xml'))
    assert app['Company'].text == 'Nueva S.L.'
    assert app['Manager'].text == 'Bob'


def test_set_time_replaces_dates(template, tmp_path):
    with WordTemplateEngine(template) as engine:
        engine.set_time('2024-05-01T10:00:00Z')
        out = engine.save(tmp_path / 'out.docx')

    core = properties(read_part(out, 'docProps/core.xml'))
    assert core['created'].text == '2024-05-01T10:00:00Z'
    assert core['created'].get(f'{{{XSI_NS}}}type') == 'dcterms:W3CDTF'
    assert 'modified' not in core
    assert 'lastPrinted' not in core


def test_set_time_defaults_to_now(template):
    with WordTemplateEngine(template) as engine:
        engine.set_time()

        created = engine.properties.get_meta_data('created')

    assert created is not None
    assert created != '2020-01-01T00:00:00Z'


def test_save_normalizes_revision_and_editing_time(template, tmp_path):
    with WordTemplateEngine(template) as engine:
        out = engine.save(tmp_path / 'out.docx')

    core = properties(read_part(out, 'docProps/core.xml'))
    assert core['revision'].text == '1'
    assert 'lastPrinted' not in core
    assert properties(read_part(out, 'docProps/app.xml'))['TotalTime'].text == '0'


def test_drop_meta_data(template, tmp_path):
    with WordTemplateEngine(template) as engine:
        engine.drop_meta_data()
        engine.set_title('Solo título')
        out = engine.save(tmp_path / 'out.docx')

    core = properties(read_part(out, 'docProps/core.xml'))
    assert set(core) == {'title', 'revision'}
    assert 'Company' not in properties(read_part(out, 'docProps/app.xml'))


def test_missing_property_parts_are_ignored(tmp_path):
    template = build_docx(tmp_path / 'bare.docx', paragraph('x') + SECT_PR, core=False, app=False)

    with WordTemplateEngine(template) as engine:
        engine.set_title('Ignorado')
        engine.set_company('Ignorada')

        assert engine.properties.get_meta_data('title') is None
        assert engine.properties.get_app_data('Company') is None

        out = engine.save(tmp_path / 'out.docx')

    assert out.exists()


def test_unknown_property_name_keeps_existing_node(template):
    with WordTemplateEngine(template) as engine:
        root = engine.properties.core.root
        language = etree.SubElement(root, '{http://purl.org/dc/elements/1.1/}language')
        language.text = 'es-ES'

        engine.properties.set_meta_data('language', 'en-GB')

        assert engine.properties.get_meta_data('language') == 'es-ES'
        assert engine.properties.get_meta_data('title') == 'Plantilla'
