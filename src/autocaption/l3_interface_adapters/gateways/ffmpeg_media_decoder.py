"""Gateway: media decoder — reads any audio-bearing format via ffmpeg subprocess."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True
from pathlib import Path

import numpy as np

from autocaption.l1_entities.audio import PcmBuffer
from autocaption.l1_entities.errors import DecodeError
from autocaption.l1_entities.timeline import MediaItem

log = logging.getLogger('acap.audio')

_FFMPEG_TIMEOUT = 300  # seconds
_FFPROBE_TIMEOUT = 30  # seconds


def _require(tool: str) -> None:
    if shutil.which(tool) is None:
        raise DecodeError(
            f'{tool} is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
        )


def _run(cmd: list[str], timeout: int, path: Path) -> bytes:
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout)  # noqa: S603
    except subprocess.TimeoutExpired as exc:
        raise DecodeError(f'{cmd[0]} timed out after {timeout}s processing: {path}') from exc
    except OSError as exc:
        raise DecodeError(f'Failed to launch {cmd[0]}: {exc}') from exc

    if result.returncode != 0:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise DecodeError(f'{cmd[0]} exited with code {result.returncode} for: {path}\n{stderr}')
    return result.stdout


def probe_stream(path: Path) -> tuple[int, int]:
    """Return (sample_rate, channels) of the first audio stream in *path*."""
    _require('ffprobe')
    cmd = [
        'ffprobe',
        '-v',
        'quiet',
        '-select_streams',
        'a:0',
        '-show_entries',
        'stream=sample_rate,channels',
        '-of',
        'json',
        str(path),
    ]
    out = _run(cmd, _FFPROBE_TIMEOUT, path)
    try:
        streams = json.loads(out or b'{}').get('streams') or []
        stream = streams[0]
        return int(stream['sample_rate']), int(stream['channels'])
    except (ValueError, KeyError, IndexError) as exc:
        raise DecodeError(f'No audio stream found in: {path}') from exc


class FfmpegMediaDecoder:
    """Decodes at the source's native rate and channel count. Holds no buffers between calls."""

    def decode(self, media: MediaItem) -> PcmBuffer:
        path = Path(media.path)
        if not path.exists():
            raise DecodeError(f'Media file not found: {path}')

        sample_rate, channels = probe_stream(path)
        _require('ffmpeg')
        cmd = [
            'ffmpeg',
            '-i',
            str(path),
            '-vn',
            '-ar',
            str(sample_rate),
            '-ac',
            str(channels),
            '-f',
            'f32le',
            '-v',
            'quiet',
            'pipe:1',
        ]
        out = _run(cmd, _FFMPEG_TIMEOUT, path)
        if not out:
            raise DecodeError(f'ffmpeg produced no audio output for: {path}')

        interleaved = np.frombuffer(out, dtype=np.float32)
        frames = len(interleaved) // channels
        samples = interleaved[: frames * channels].reshape(frames, channels).T.copy()
        buffer = PcmBuffer(samples=samples, sample_rate=sample_rate)
        log.debug('Decoded %s: %d ch, %d Hz, %.2fs', path.name, channels, sample_rate, buffer.duration)
        return buffer
