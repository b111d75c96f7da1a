"""Tests for the whisper.cpp backend probe."""

from __future__ import annotations

import sys
import types
from unittest.mock import MagicMock, patch

from autocaption.l3_interface_adapters.gateways.whisper_backend_probe import WhisperBackendProbe, parse_accelerators


def _fake_pywhispercpp(system_info=None, error=None) -> types.ModuleType:
    module = types.ModuleType('pywhispercpp.model')
    module.Model = MagicMock()
    if error is not None:
        module.Model.system_info.side_effect = error
    else:
        module.Model.system_info.return_value = system_info
    return module


class TestParseAccelerators:
    def test_legacy_flag_line(self):
        assert parse_accelerators('AVX = 1 | AVX2 = 1 | NEON = 0 | CUDA = 1 | METAL = 0 |') == {'CUDA'}

    def test_backend_sections(self):
        assert parse_accelerators('WHISPER : COREML = 0 | Metal : EMBED_LIBRARY = 1 | CPU : NEON = 1 |') == {'METAL'}

    def test_cpu_only(self):
        assert parse_accelerators('CPU : SSE3 = 1 | AVX = 1 | COREML = 0 | OPENVINO = 0 |') == set()


class TestWhisperBackendProbe:
    def test_accelerated_build(self):
        with patch.dict(sys.modules, {'pywhispercpp.model': _fake_pywhispercpp('CUDA : ARCHS = 890 |')}):
            caps = WhisperBackendProbe().probe()
        assert caps.has_accelerator and caps.has_fallback
        assert caps.warnings == []

    def test_cpu_build_warns(self):
        with patch.dict(sys.modules, {'pywhispercpp.model': _fake_pywhispercpp('CPU : AVX = 1 |')}):
            caps = WhisperBackendProbe().probe()
        assert not caps.has_accelerator
        assert caps.has_fallback
        assert len(caps.warnings) == 1

    def test_system_info_failure_falls_back(self):
        with patch.dict(sys.modules, {'pywhispercpp.model': _fake_pywhispercpp(error=RuntimeError('boom'))}):
            caps = WhisperBackendProbe().probe()
        assert caps.has_fallback
        assert caps.warnings == ['Failed to detect device capabilities']

    def test_missing_library_reports_nothing_available(self):
        with patch.dict(sys.modules, {'pywhispercpp.model': None}):
            caps = WhisperBackendProbe().probe()
        assert not caps.has_accelerator
        assert not caps.has_fallback
