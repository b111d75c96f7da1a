"""Configuration defaults — live in L4, not domain."""

from __future__ import annotations

import copy

from autocaption.l1_entities.config import AppConfig
from autocaption.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'transcription': {
        'model': 'base.en',
        'language': 'en',
        'task': 'transcribe',
        'chunk_length': 30.0,
        'stride_length': 5.0,
        'distil_chunk_length': 20.0,
        'distil_stride_length': 3.0,
    },
    'audio': {
        'target_sample_rate': 16000,
    },
    'captions': {
        'min_sentence_duration': 1.0,
        'min_word_duration': 0.5,
        'min_clamped_duration': 0.0,
        'style': {
            'font_size': 36,
            'font_family': 'Arial',
            'color': '#ffffff',
            'background_color': 'rgba(0, 0, 0, 0.7)',
            'text_align': 'center',
            'font_weight': 'bold',
            'x': 0,
            'y': 200,
        },
    },
    'output': {
        'directory': './output',
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)
