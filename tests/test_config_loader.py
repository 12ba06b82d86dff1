from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

import pytest
import yaml
from pydantic import ValidationError

from template_engine.config_loader import load_engine_settings, load_job, load_yaml_config
from template_engine.schema_models import EngineSettings, GenerationJob


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding='utf-8')
    return path


def test_load_yaml_config_missing_returns_none(tmp_path):
    assert load_yaml_config(tmp_path / 'missing.yaml') is None


def test_load_yaml_config_empty_file(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('', encoding='utf-8')

    assert load_yaml_config(path) == {}


def test_engine_settings_defaults():
    settings = load_engine_settings()

    assert settings == EngineSettings()
    assert settings.locale == 'C.UTF-8'
    assert settings.converter_binary == 'soffice'
    assert settings.alternative_syntax is False
    assert settings.send_output_headers is True


def test_engine_settings_under_engine_key(tmp_path):
    path = write_yaml(tmp_path / 'engine.yaml', {
        'engine': {'locale': 'es_ES.UTF-8', 'alternative_syntax': True, 'output_filter': 'HTML:EmbedImages'},
    })

    settings = load_engine_settings(path)

    assert settings.locale == 'es_ES.UTF-8'
    assert settings.alternative_syntax is True
    assert settings.output_filter == 'HTML:EmbedImages'


def test_load_job_resolves_relative_paths(tmp_path):
    path = write_yaml(tmp_path / 'job.yaml', {
        'job': {
            'template': 'plantillas/factura.docx',
            'destination': '/srv/out/factura.pdf',
            'format': 'PDF',
            'values': {'total': 42, 'nota': None},
            'images': {'replace': {1: 'logo.png'}, 'delete': [2, 3]},
        },
    })

    job = load_job(path)

    assert job.template == str(tmp_path / 'plantillas' / 'factura.docx')
    assert job.destination == '/srv/out/factura.pdf'
    assert job.format == 'pdf'
    assert job.values == {'total': '42', 'nota': None}
    assert job.images.replace == {'1': str(tmp_path / 'logo.png')}
    assert job.images.delete == ['2', '3']


def test_load_engine_settings_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_engine_settings(tmp_path / 'nope.yaml')


def test_load_job_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_job(tmp_path / 'nope.yaml')


def test_job_rejects_unknown_format():
    with pytest.raises(ValidationError):
        GenerationJob(template='a.docx', destination='b.odt', format='odt')


def test_job_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        GenerationJob(template='a.docx', destination='b.docx', colour='red')


def test_job_defaults():
    job = GenerationJob(template='a.docx', destination='b.docx')

    assert job.format == 'docx'
    assert job.repeat is None
    assert job.clone_rows == {}
    assert job.images.replace == {}
    assert job.metadata.title is None
    assert job.html.style_sheets == []
