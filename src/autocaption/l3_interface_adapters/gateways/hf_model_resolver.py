"""Gateway: HuggingFace model resolver — implements ModelResolver port."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from huggingface_hub import hf_hub_download
from pywhispercpp.constants import MODELS_DIR

from autocaption.l1_entities.backend import Precision
from autocaption.l1_entities.errors import ModelResolutionError

log = logging.getLogger('acap.worker')

WHISPER_CPP_REPO = 'ggerganov/whisper.cpp'
WHISPER_CPP_MODELS = {
    'tiny': 'ggml-tiny.bin',
    'tiny-q8_0': 'ggml-tiny-q8_0.bin',
    'tiny.en': 'ggml-tiny.en.bin',
    'tiny.en-q8_0': 'ggml-tiny.en-q8_0.bin',
    'base': 'ggml-base.bin',
    'base-q8_0': 'ggml-base-q8_0.bin',
    'base.en': 'ggml-base.en.bin',
    'base.en-q8_0': 'ggml-base.en-q8_0.bin',
    'small': 'ggml-small.bin',
    'small-q8_0': 'ggml-small-q8_0.bin',
    'small.en': 'ggml-small.en.bin',
    'small.en-q8_0': 'ggml-small.en-q8_0.bin',
    'medium': 'ggml-medium.bin',
    'medium-q8_0': 'ggml-medium-q8_0.bin',
    'medium.en': 'ggml-medium.en.bin',
    'medium.en-q8_0': 'ggml-medium.en-q8_0.bin',
    'large-v3-turbo': 'ggml-large-v3-turbo.bin',
    'large-v3-turbo-q8_0': 'ggml-large-v3-turbo-q8_0.bin',
}

DISTIL_MODELS = {
    'distil-large-v3': ('distil-whisper/distil-large-v3-ggml', 'ggml-distil-large-v3.bin'),
}


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    size: str
    description: str


MODEL_CATALOG: list[CatalogEntry] = [
    CatalogEntry('tiny.en', '75 MB', 'Fastest, English only; rough accuracy'),
    CatalogEntry('base.en', '142 MB', 'Fast English-only model; good default'),
    CatalogEntry('base', '142 MB', 'Fast multilingual model'),
    CatalogEntry('small.en', '466 MB', 'Balanced English-only model'),
    CatalogEntry('small', '466 MB', 'Balanced multilingual model'),
    CatalogEntry('medium', '1.5 GB', 'Accurate multilingual model; slow on CPU'),
    CatalogEntry('large-v3-turbo', '1.6 GB', 'Most accurate; needs GPU acceleration to be practical'),
    CatalogEntry('distil-large-v3', '1.5 GB', 'Distilled large model, English; shorter windows'),
]

# (percent, filename)
ProgressCallback = Callable[[int, str], None]


def _make_progress_class(callback: ProgressCallback, filename: str) -> type:
    """Create a tqdm-compatible class that reports download progress via *callback*."""

    class _ProgressReporter:
        def __init__(self, *args, **kwargs):
            self.total: int = kwargs.get('total', 0) or 0
            self.n: int = 0
            if self.total > 0:
                callback(0, filename)

        def update(self, n: int = 1) -> None:
            self.n += n
            if self.total > 0:
                callback(min(int(self.n / self.total * 100), 100), filename)

        def close(self) -> None:
            pass

        def set_description(self, *a, **kw) -> None:
            pass

        def set_description_str(self, *a, **kw) -> None:
            pass

        def refresh(self) -> None:
            pass

        def __enter__(self):
            return self

        def __exit__(self, *args):
            self.close()

    return _ProgressReporter


def variant_for(model_id: str, precision: Precision | None) -> str:
    """Pick the quantized file when the backend wants one and the repo ships it."""
    if precision is not None and precision.is_quantized:
        quantized = f'{model_id}-{precision.value}'
        if quantized in WHISPER_CPP_MODELS:
            return quantized
    return model_id


class HfModelResolver:
    """Resolves whisper model ids to local file paths, downloading from HF if needed."""

    def __init__(self, on_progress: ProgressCallback | None = None) -> None:
        self._on_progress = on_progress

    def resolve(self, model_id: str, precision: Precision | None = None) -> str:
        if Path(model_id).is_absolute():
            if not Path(model_id).exists():
                raise ModelResolutionError(f'Model file not found: {model_id}')
            return model_id

        name = variant_for(model_id, precision)
        if name != model_id:
            log.info('Using %s for %s precision', name, precision.value if precision else '?')

        try:
            if name in WHISPER_CPP_MODELS:
                filename = WHISPER_CPP_MODELS[name]
                return _download(WHISPER_CPP_REPO, filename, 'whisper-cpp', self._tqdm_class(filename))
            if name in DISTIL_MODELS:
                repo_id, filename = DISTIL_MODELS[name]
                return _download(repo_id, filename, 'distil', self._tqdm_class(filename))
        except ModelResolutionError:
            raise
        except Exception as exc:
            raise ModelResolutionError(f'Failed to download model {name}: {exc}') from exc

        raise ModelResolutionError(f'Unknown model: {model_id}')

    def _tqdm_class(self, filename: str) -> type | None:
        if self._on_progress is None:
            return None
        return _make_progress_class(self._on_progress, filename)


def _download(repo_id: str, filename: str, subdir: str, tqdm_class: type | None) -> str:
    cache_dir = Path(MODELS_DIR) / subdir
    cache_dir.mkdir(parents=True, exist_ok=True)
    local_path = cache_dir / filename
    if local_path.exists():
        return str(local_path)
    kwargs: dict = dict(repo_id=repo_id, filename=filename, local_dir=cache_dir)
    if tqdm_class is not None:
        kwargs['tqdm_class'] = tqdm_class
    return hf_hub_download(**kwargs)
