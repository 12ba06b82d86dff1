"""
Línea de comandos: ejecuta un trabajo de generación descrito en YAML.

    python -m template_engine trabajo.yaml [--settings motor.yaml]
"""

import argparse
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from template_engine import __version__
from template_engine.config_loader import load_engine_settings, load_job
from template_engine.errors import TemplateEngineError
from template_engine.job_runner import run_job


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='template_engine',
        description=f"template_engine {__version__} - Genera documentos a partir de plantillas .docx",
    )
    parser.add_argument('job', type=Path, help="YAML del trabajo de generación")
    parser.add_argument('-s', '--settings', type=Path, help="YAML con los ajustes del motor")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_engine_settings(args.settings)
        job = load_job(args.job)
        destination = run_job(job, settings)
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except TemplateEngineError as exc:
        print(f"error [{exc.code}]: {exc.message}", file=sys.stderr)
        return 2

    print(destination)
    return 0


if __name__ == '__main__':
    sys.exit(main())
