"""Tests for HF model resolver gateway."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from autocaption.l1_entities.backend import Precision
from autocaption.l1_entities.errors import ModelResolutionError
from autocaption.l3_interface_adapters.gateways.hf_model_resolver import (
    DISTIL_MODELS,
    MODEL_CATALOG,
    WHISPER_CPP_MODELS,
    HfModelResolver,
    _make_progress_class,  # noqa: PLC2701 -- testing private helper
    variant_for,
)

MODULE = 'autocaption.l3_interface_adapters.gateways.hf_model_resolver'


class TestHfModelResolver:
    def test_absolute_path_exists(self, tmp_path: Path):
        model_file = tmp_path / 'model.bin'
        model_file.touch()
        resolver = HfModelResolver()
        assert resolver.resolve(str(model_file)) == str(model_file)

    def test_absolute_path_not_found(self, tmp_path: Path):
        resolver = HfModelResolver()
        with pytest.raises(ModelResolutionError, match='not found'):
            resolver.resolve(str(tmp_path / 'nope.bin'))

    def test_unknown_name_rejected(self):
        resolver = HfModelResolver()
        with pytest.raises(ModelResolutionError, match='Unknown model: some-custom-model'):
            resolver.resolve('some-custom-model')

    def test_large_v3_turbo_q8_is_known(self):
        assert WHISPER_CPP_MODELS['large-v3-turbo-q8_0'] == 'ggml-large-v3-turbo-q8_0.bin'

    def test_catalog_names_all_resolvable(self):
        for entry in MODEL_CATALOG:
            assert entry.name in WHISPER_CPP_MODELS or entry.name in DISTIL_MODELS

    def test_on_progress_not_called_for_absolute_path(self, tmp_path: Path):
        model_file = tmp_path / 'model.bin'
        model_file.touch()
        calls = []
        resolver = HfModelResolver(on_progress=lambda p, f: calls.append(p))
        resolver.resolve(str(model_file))
        assert calls == []

    @patch(f'{MODULE}.hf_hub_download')
    def test_on_progress_passes_tqdm_class_to_download(self, mock_download, tmp_path):
        mock_download.return_value = str(tmp_path / 'model.bin')
        resolver = HfModelResolver(on_progress=lambda p, f: None)
        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            resolver.resolve('large-v3-turbo-q8_0')
        assert mock_download.called
        assert 'tqdm_class' in mock_download.call_args.kwargs
        assert mock_download.call_args.kwargs['repo_id'] == 'ggerganov/whisper.cpp'

    @patch(f'{MODULE}.hf_hub_download')
    def test_no_tqdm_class_without_on_progress(self, mock_download, tmp_path):
        mock_download.return_value = str(tmp_path / 'model.bin')
        resolver = HfModelResolver()
        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            resolver.resolve('large-v3-turbo-q8_0')
        assert 'tqdm_class' not in mock_download.call_args.kwargs

    @patch(f'{MODULE}.hf_hub_download')
    def test_quantized_precision_picks_q8_file(self, mock_download, tmp_path):
        mock_download.return_value = str(tmp_path / 'model.bin')
        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            HfModelResolver().resolve('small', Precision.Q8)
        assert mock_download.call_args.kwargs['filename'] == 'ggml-small-q8_0.bin'

    @patch(f'{MODULE}.hf_hub_download')
    def test_distil_model_uses_its_own_repo(self, mock_download, tmp_path):
        mock_download.return_value = str(tmp_path / 'model.bin')
        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            HfModelResolver().resolve('distil-large-v3', Precision.Q8)
        assert mock_download.call_args.kwargs['repo_id'] == 'distil-whisper/distil-large-v3-ggml'
        assert mock_download.call_args.kwargs['local_dir'] == tmp_path / 'models' / 'distil'

    @patch(f'{MODULE}.hf_hub_download', side_effect=OSError('connection reset'))
    def test_download_failure_wrapped(self, _mock_download, tmp_path):
        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            with pytest.raises(ModelResolutionError, match='connection reset'):
                HfModelResolver().resolve('base.en')


class TestVariantFor:
    def test_fp16_keeps_name(self):
        assert variant_for('small', Precision.FP16) == 'small'

    def test_q8_picks_quantized_when_shipped(self):
        assert variant_for('base.en', Precision.Q8) == 'base.en-q8_0'

    def test_q8_keeps_name_when_no_quantized_file(self):
        assert variant_for('distil-large-v3', Precision.Q8) == 'distil-large-v3'

    def test_no_precision(self):
        assert variant_for('small', None) == 'small'


class TestProgressClass:
    def test_reports_zero_on_init(self):
        calls = []
        cls = _make_progress_class(lambda p, f: calls.append((p, f)), 'ggml-base.bin')
        cls(total=1000)
        assert calls == [(0, 'ggml-base.bin')]

    def test_reports_percentage_on_update(self):
        calls = []
        cls = _make_progress_class(lambda p, f: calls.append(p), 'm.bin')
        reporter = cls(total=100)
        reporter.update(50)
        reporter.update(50)
        assert calls == [0, 50, 100]

    def test_no_callback_when_total_is_zero(self):
        calls = []
        cls = _make_progress_class(lambda p, f: calls.append(p), 'm.bin')
        reporter = cls(total=0)
        reporter.update(10)
        assert calls == []

    def test_caps_at_100(self):
        calls = []
        cls = _make_progress_class(lambda p, f: calls.append(p), 'm.bin')
        reporter = cls(total=50)
        reporter.update(60)  # overshoots
        assert calls[-1] == 100

    def test_tqdm_surface_is_noop(self):
        cls = _make_progress_class(lambda p, f: None, 'm.bin')
        with cls(total=100) as reporter:
            reporter.set_description('downloading')
            reporter.set_description_str('downloading')
            reporter.refresh()


class TestCacheHit:
    @patch(f'{MODULE}.hf_hub_download')
    def test_whisper_cpp_cache_hit_skips_download(self, mock_download, tmp_path):
        cache_dir = tmp_path / 'models' / 'whisper-cpp'
        cache_dir.mkdir(parents=True)
        (cache_dir / 'ggml-large-v3-turbo-q8_0.bin').touch()

        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            result = HfModelResolver().resolve('large-v3-turbo-q8_0')

        mock_download.assert_not_called()
        assert result.endswith('ggml-large-v3-turbo-q8_0.bin')

    @patch(f'{MODULE}.hf_hub_download')
    def test_distil_cache_hit_skips_download(self, mock_download, tmp_path):
        cache_dir = tmp_path / 'models' / 'distil'
        cache_dir.mkdir(parents=True)
        (cache_dir / 'ggml-distil-large-v3.bin').touch()

        with patch(f'{MODULE}.MODELS_DIR', str(tmp_path / 'models')):
            result = HfModelResolver().resolve('distil-large-v3')

        mock_download.assert_not_called()
        assert result.endswith('ggml-distil-large-v3.bin')
