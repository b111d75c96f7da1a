"""Gateway: probe whisper.cpp build flags — implements BackendProbe port."""

from __future__ import annotations

import logging
import re

from autocaption.l1_entities.backend import DeviceCapabilities
from autocaption.l2_use_cases.backend_selection import describe_capabilities, fallback_capabilities

log = logging.getLogger('acap.orchestrator')

ACCELERATOR_FLAGS = frozenset({'CUDA', 'METAL', 'VULKAN', 'COREML', 'HIPBLAS', 'SYCL', 'CANN'})

_ENABLED_FLAG = re.compile(r'\b([A-Z][A-Z0-9_]*)\s*=\s*1\b')
_BACKEND_SECTION = re.compile(r'\b([A-Za-z][A-Za-z0-9_]*)\s*:')


def parse_accelerators(system_info: str) -> set[str]:
    """Accelerator backends named in a whisper.cpp system-info line.

    Older builds print ``CUDA = 1``; newer ones print a ``CUDA : ...`` section per loaded backend.
    """
    names = {m.group(1).upper() for m in _ENABLED_FLAG.finditer(system_info)}
    names |= {m.group(1).upper() for m in _BACKEND_SECTION.finditer(system_info)}
    return names & ACCELERATOR_FLAGS


class WhisperBackendProbe:
    """The CPU fallback counts as available whenever pywhispercpp imports."""

    def probe(self) -> DeviceCapabilities:
        try:
            from pywhispercpp.model import Model  # noqa: PLC0415 -- deferred: probing must survive a broken install
        except ImportError as exc:
            log.warning('pywhispercpp is not importable: %s', exc)
            return describe_capabilities(has_accelerator=False, has_fallback=False)

        try:
            info = Model.system_info()
        except Exception as exc:
            log.warning('Failed to detect device capabilities: %s', exc)
            return fallback_capabilities()

        accelerators = parse_accelerators(str(info))
        log.debug('whisper.cpp system info: %s (accelerators=%s)', info, sorted(accelerators))
        return describe_capabilities(has_accelerator=bool(accelerators), has_fallback=True)
