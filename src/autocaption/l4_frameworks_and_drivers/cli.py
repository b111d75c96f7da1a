"""CLI entry point for autocaption."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from autocaption import __version__


def _load_config(config_path: str | None, overrides: dict):
    from autocaption.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from autocaption.l4_frameworks_and_drivers.infra_config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )

    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides)
        return build_app_config(raw)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """autocaption -- transcribe timeline audio into captions and subtitle files."""


@cli.command()
@click.argument('project_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True),
    help='Path to YAML config file.',
)
@click.option(
    '-o',
    '--output-dir',
    default=None,
    type=click.Path(),
    help='Directory for subtitle files and the debug log.',
)
@click.option(
    '--element',
    'use_element',
    is_flag=True,
    default=False,
    help='Transcribe the selected element. This already happens without --track; the flag only spells it out.',
)
@click.option('-t', '--track', default=None, help='Transcribe a whole track, by id or name, instead.')
@click.option(
    '--mode',
    type=click.Choice(['sentences', 'words']),
    default='sentences',
    show_default=True,
    help='Caption granularity used with --insert.',
)
@click.option('--insert', is_flag=True, default=False, help='Add captions to a new text track and save the project.')
@click.option('--srt/--no-srt', default=True, show_default=True, help='Write <track>_subtitles.srt.')
@click.option('-m', '--model', default=None, help='Whisper model id (see `autocaption models`).')
@click.option('-l', '--language', default=None, help='Spoken language code, e.g. "en".')
@click.option('--task', type=click.Choice(['transcribe', 'translate']), default=None, help='Translate to English instead.')
@click.option('--debug-log', is_flag=True, default=False, help='Write acap_debug.log into the output directory.')
def transcribe(
    project_file,
    config_path,
    output_dir,
    use_element,
    track,
    mode,
    insert,
    srt,
    model,
    language,
    task,
    debug_log,
):
    """Transcribe audio from PROJECT_FILE into captions.

    Without --track, the project's selected element is transcribed.
    """
    if use_element and track:
        raise click.UsageError('--element and --track are mutually exclusive.')

    overrides = {
        'transcription': {'model': model, 'language': language, 'task': task},
        'output': {'directory': output_dir},
    }
    config = _load_config(config_path, overrides)
    out_dir = Path(output_dir or config.output.directory)

    if debug_log:
        from autocaption.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: only with --debug-log
            setup_file_logging,
        )

        setup_file_logging(out_dir)

    from autocaption.l1_entities.timeline import Granularity  # noqa: PLC0415 -- deferred: not needed for --help
    from autocaption.l4_frameworks_and_drivers.batch_runner import (  # noqa: PLC0415 -- deferred: pulls numpy and the worker stack
        run_batch,
    )

    run_batch(
        project_path=Path(project_file),
        config=config,
        out_dir=out_dir,
        track=track,
        granularity=Granularity(mode),
        insert=insert,
        srt=srt,
        model=model,
        language=language,
        task=task,
    )


@cli.command()
def capabilities():
    """Report which inference backends this machine can use."""
    from autocaption.l1_entities.errors import NoBackendAvailableError  # noqa: PLC0415 -- deferred: not needed for --help
    from autocaption.l2_use_cases.backend_selection import select_backend  # noqa: PLC0415 -- deferred: not needed for --help
    from autocaption.l3_interface_adapters.gateways.whisper_backend_probe import (  # noqa: PLC0415 -- deferred: imports pywhispercpp
        WhisperBackendProbe,
    )

    caps = WhisperBackendProbe().probe()
    click.echo(f'GPU acceleration: {"yes" if caps.has_accelerator else "no"}')
    click.echo(f'CPU backend:      {"yes" if caps.has_fallback else "no"}')
    click.echo(f'Recommended:      {caps.recommended_backend.value}')
    for warning in caps.warnings:
        click.echo(f'Warning: {warning}', err=True)
    try:
        selection = select_backend(caps)
    except NoBackendAvailableError as e:
        click.echo(f'Error: {e.message}', err=True)
        sys.exit(1)
    click.echo(f'Precision:        {selection.precision.value}')


@cli.command()
def models():
    """List the whisper models available for download."""
    from autocaption.l3_interface_adapters.gateways.hf_model_resolver import (  # noqa: PLC0415 -- deferred: imports huggingface_hub
        MODEL_CATALOG,
    )

    width = max(len(entry.name) for entry in MODEL_CATALOG)
    for entry in MODEL_CATALOG:
        click.echo(f'{entry.name:<{width}}  {entry.size:>7}  {entry.description}')
