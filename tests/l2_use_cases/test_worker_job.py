"""Tests for the worker-side job use case and model slot."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from autocaption.l1_entities.backend import Precision
from autocaption.l1_entities.errors import (
    EmptyAudioInputError,
    MissingModelSpecError,
    ModelLoadFailedError,
    ModelResolutionError,
)
from autocaption.l1_entities.processing_status import Stage
from autocaption.l2_use_cases.worker_job_use_case import ModelSlot, WorkerJobUseCase
from tests.conftest import FakeEngine, FakeModelResolver

SR = 16000


class _EngineFactory:
    def __init__(self, **engine_kwargs):
        self._kwargs = engine_kwargs
        self.created: list[FakeEngine] = []

    def __call__(self) -> FakeEngine:
        engine = FakeEngine(**self._kwargs)
        self.created.append(engine)
        return engine


class _BrokenEngine(FakeEngine):
    def load(self, model_path: str) -> None:
        raise RuntimeError('bad ggml header')


def _request(**overrides) -> dict:
    request = {
        'audio': np.zeros(SR, dtype=np.float32),
        'model': 'small',
        'precision': 'fp16',
        'language': 'fr',
        'task': 'translate',
    }
    request.update(overrides)
    return request


def _use_case(factory=None, resolver=None):
    factory = factory or _EngineFactory()
    resolver = resolver or FakeModelResolver()
    updates = []
    use_case = WorkerJobUseCase(ModelSlot(factory), resolver, updates.append)
    return use_case, factory, resolver, updates


class TestWorkerJobUseCase:
    def test_loads_resolved_model_and_passes_language(self):
        use_case, factory, resolver, _ = _use_case()
        use_case.execute(_request())
        engine = factory.created[0]
        assert engine.load_calls == ['/fake/small.bin']
        assert resolver.resolve_calls == [('small', Precision.FP16)]
        assert engine.window_calls == [(SR, 'fr', 'translate')]

    def test_english_only_model_drops_language_and_task(self):
        use_case, factory, _, _ = _use_case()
        use_case.execute(_request(model='base.en'))
        assert factory.created[0].window_calls == [(SR, None, None)]

    def test_loading_update_posted_first(self):
        factory = _EngineFactory(windows=[[(0.0, 1.0, ' hi')]])
        use_case, _, _, updates = _use_case(factory)
        use_case.execute(_request())
        assert updates[0].stage is Stage.LOADING
        assert updates[-1].stage is Stage.TRANSCRIBING

    def test_distilled_model_uses_short_windows(self):
        use_case, factory, _, _ = _use_case()
        use_case.execute(_request(model='distil-large-v3', audio=np.zeros(25 * SR, dtype=np.float32)))
        assert [c[0] for c in factory.created[0].window_calls] == [20 * SR, 8 * SR]

    def test_request_window_overrides_default(self):
        use_case, factory, _, _ = _use_case()
        use_case.execute(
            _request(audio=np.zeros(25 * SR, dtype=np.float32), chunk_length=10.0, stride_length=2.0)
        )
        assert [c[0] for c in factory.created[0].window_calls] == [10 * SR, 10 * SR, 9 * SR]

    def test_empty_audio_rejected(self):
        use_case, factory, _, _ = _use_case()
        with pytest.raises(EmptyAudioInputError):
            use_case.execute(_request(audio=np.zeros(0, dtype=np.float32)))
        assert factory.created == []

    def test_missing_model_rejected(self):
        use_case, _, _, _ = _use_case()
        with pytest.raises(MissingModelSpecError, match='No model specified'):
            use_case.execute(_request(model=None))

    def test_resolution_error_propagates(self):
        use_case, _, _, _ = _use_case(resolver=FakeModelResolver(error=ModelResolutionError('Unknown model: x')))
        with pytest.raises(ModelResolutionError):
            use_case.execute(_request())

    def test_returns_engine_output(self):
        factory = _EngineFactory(windows=[[(0.0, 1.0, ' hello'), (1.0, 2.0, ' there')]])
        use_case, _, _, _ = _use_case(factory)
        output = use_case.execute(_request())
        assert output.text == 'hello there'
        assert len(output.chunks) == 2


class TestModelSlot:
    def test_same_model_reused(self):
        factory = _EngineFactory()
        resolver = FakeModelResolver()
        slot = ModelSlot(factory)
        first = slot.acquire('small', Precision.FP16, resolver)
        second = slot.acquire('small', Precision.FP16, resolver)
        assert first is second
        assert len(factory.created) == 1
        assert len(resolver.resolve_calls) == 1

    def test_different_model_disposes_previous(self):
        factory = _EngineFactory()
        slot = ModelSlot(factory)
        slot.acquire('small', Precision.FP16, FakeModelResolver())
        slot.acquire('medium', Precision.FP16, FakeModelResolver())
        assert factory.created[0].dispose_calls == 1
        assert slot.current_model == 'medium'

    def test_precision_change_reloads(self):
        factory = _EngineFactory()
        slot = ModelSlot(factory)
        slot.acquire('small', Precision.FP16, FakeModelResolver())
        slot.acquire('small', Precision.Q8, FakeModelResolver())
        assert len(factory.created) == 2

    def test_failed_dispose_is_logged_and_cleared(self, caplog):
        slot = ModelSlot(_EngineFactory(dispose_error=RuntimeError('busy')))
        slot.acquire('small', None, FakeModelResolver())
        with caplog.at_level(logging.WARNING, logger='acap.worker'):
            slot.dispose()
        assert slot.current_model is None
        assert 'busy' in caplog.text

    def test_load_failure_wrapped(self):
        slot = ModelSlot(_BrokenEngine)
        with pytest.raises(ModelLoadFailedError, match='bad ggml header'):
            slot.acquire('small', None, FakeModelResolver())
        assert slot.current_model is None
