"""File-based debug logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FILENAME = 'acap_debug.log'

# Chatty at DEBUG during model downloads.
_QUIET_LOGGERS = ('huggingface_hub', 'urllib3', 'filelock')


def setup_file_logging(output_dir: Path, level: int = logging.DEBUG) -> Path:
    """Send ``acap.*`` records to ``acap_debug.log`` in *output_dir*. Safe to call twice."""
    output_dir.mkdir(parents=True, exist_ok=True)
    log_path = output_dir / LOG_FILENAME
    root = logging.getLogger('acap')
    root.setLevel(level)

    target = str(log_path.resolve())
    if not any(isinstance(h, logging.FileHandler) and h.baseFilename == target for h in root.handlers):
        handler = logging.FileHandler(log_path, encoding='utf-8')
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger('acap.session').info('Debug logging started → %s', log_path)
    return log_path
