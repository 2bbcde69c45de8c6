"""CLI entry point for openapi-tsgen."""

from collections import defaultdict
from pathlib import Path

import click
from pydantic import ValidationError

from openapi_tsgen.config import GeneratorConfig
from openapi_tsgen.generator.render import render_module
from openapi_tsgen.generator.writer import write_output
from openapi_tsgen.parser.loader import DocumentLoadError, load_document
from openapi_tsgen.schema.errors import GenerationError
from openapi_tsgen.schema.pipeline import generate_model
from openapi_tsgen.utils.logging import configure_logging, timed_log_debug

FORMATS = ["auto", "json", "yaml"]


def _config() -> GeneratorConfig:
    try:
        return GeneratorConfig.from_env()
    except ValidationError as e:
        raise click.ClickException(f"invalid generator settings in the environment:\n{e}") from e


def _generate(doc_path: Path, output: Path, fmt: str, config: GeneratorConfig) -> bool:
    """Load, synthesize, render and write one document. Returns True if written."""
    with timed_log_debug("generate", document=doc_path):
        document = load_document(doc_path, fmt)
        model = generate_model(document)
        text = render_module(model, config)
        return write_output(output, text)


def _shared_outputs(doc_paths: tuple[Path, ...]) -> dict[Path, list[Path]]:
    """Documents whose ``<stem>.ts`` would be written by another document too."""
    by_stem: dict[str, set[Path]] = defaultdict(set)
    for doc_path in doc_paths:
        by_stem[doc_path.stem].add(doc_path.resolve())
    shared = {}
    for doc_path in doc_paths:
        others = sorted(p for p in by_stem[doc_path.stem] if p != doc_path.resolve())
        if others:
            shared[doc_path] = others
    return shared


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug details to stderr.")
def main(verbose: bool):
    """openapi-tsgen: generate TypeScript types from OpenAPI documents."""
    configure_logging("DEBUG" if verbose else "WARNING")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(dir_okay=False, path_type=Path), help="Output .ts file path.")
@click.option("--format", "fmt", default="auto", type=click.Choice(FORMATS), help="Document format.")
def generate(doc_path: Path, output: Path, fmt: str):
    """Generate a TypeScript declaration module from one API document."""
    config = _config()
    click.echo(f"Generating types from {doc_path} (format: {fmt})...")
    try:
        written = _generate(doc_path, output, fmt, config)
    except (DocumentLoadError, GenerationError) as e:
        raise click.ClickException(str(e)) from e

    if written:
        click.echo(f"Types saved to {output}")
    else:
        click.echo(f"{output} is up to date")


@main.command()
@click.argument("doc_paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-d", "--out-dir", required=True, type=click.Path(file_okay=False, path_type=Path), help="Output directory for the .ts files.")
@click.option("--format", "fmt", default="auto", type=click.Choice(FORMATS), help="Document format.")
def batch(doc_paths: tuple[Path, ...], out_dir: Path, fmt: str):
    """Generate one module per document; a failing document does not stop the others."""
    config = _config()
    shared = _shared_outputs(doc_paths)
    failed = []
    for doc_path in doc_paths:
        output = out_dir / f"{doc_path.stem}.ts"
        if doc_path in shared:
            others = ", ".join(str(p) for p in shared[doc_path])
            click.echo(f"  FAILED {doc_path}: output {output} is also the output of {others}", err=True)
            failed.append(doc_path)
            continue
        try:
            written = _generate(doc_path, output, fmt, config)
        except (DocumentLoadError, GenerationError) as e:
            click.echo(f"  FAILED {doc_path}: {e}", err=True)
            failed.append(doc_path)
            continue
        click.echo(f"  {'Created' if written else 'Unchanged'} {output}")

    click.echo(f"Generated {len(doc_paths) - len(failed)} of {len(doc_paths)} modules in {out_dir}")
    if failed:
        raise SystemExit(1)
