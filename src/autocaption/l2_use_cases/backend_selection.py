"""Use case: choose the inference backend and numeric precision from probed capabilities."""

from __future__ import annotations

from autocaption.l1_entities.backend import BackendSelection, Device, DeviceCapabilities, Precision
from autocaption.l1_entities.errors import NoBackendAvailableError

NO_BACKEND_MESSAGE = (
    'Neither GPU acceleration nor the CPU backend is available. '
    'Speech-to-text requires at least the CPU backend.'
)


def describe_capabilities(has_accelerator: bool, has_fallback: bool) -> DeviceCapabilities:
    """Build a capabilities report with user-facing warnings."""
    warnings: list[str] = []
    if not has_accelerator and not has_fallback:
        warnings.append('Neither GPU acceleration nor the CPU backend is available. Speech-to-text may not work.')
        warnings.append('This system does not provide the runtime support speech-to-text requires.')
    elif not has_accelerator:
        warnings.append('GPU acceleration is not available. Using CPU backend (slower performance).')
    return DeviceCapabilities(has_accelerator=has_accelerator, has_fallback=has_fallback, warnings=warnings)


def select_backend(capabilities: DeviceCapabilities) -> BackendSelection:
    """Accelerated backend gets fp16; the CPU fallback gets a quantized model."""
    if capabilities.has_accelerator:
        return BackendSelection(device=Device.ACCELERATED, precision=Precision.FP16)
    if capabilities.has_fallback:
        return BackendSelection(device=Device.FALLBACK, precision=Precision.Q8)
    raise NoBackendAvailableError(NO_BACKEND_MESSAGE, warnings=capabilities.warnings)


def fallback_capabilities() -> DeviceCapabilities:
    """Report used when probing itself fails: assume the CPU backend works."""
    return DeviceCapabilities(
        has_accelerator=False,
        has_fallback=True,
        warnings=['Failed to detect device capabilities'],
    )
