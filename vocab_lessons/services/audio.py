"""Write-only store for narration audio blobs."""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Optional

from ..config import AppConfig
from .events import EventEmitter, track_file_operation
from .files import StorageError, atomic_write_bytes
from .naming import safe_basename


LOGGER = logging.getLogger(__name__)


class AudioWriteError(StorageError):
    """Raised when an audio payload cannot be decoded or written."""


def decode_audio_payload(encoded: str) -> bytes:
    """Decode a base64 payload, tolerating a ``data:<mime>;base64,`` prefix."""

    text = encoded.strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as error:
        raise AudioWriteError(f"Audio payload is not valid base64: {error}") from error


class AudioBlobStore:
    """Persist audio files under ``audio_root`` keyed by their base name."""

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[EventEmitter] = None,
    ) -> None:
        self._root = config.audio_root
        self._event_emitter = event_emitter

    @property
    def root(self) -> Path:
        return self._root

    def configure_event_emitter(self, emitter: Optional[EventEmitter]) -> None:
        self._event_emitter = emitter

    def store(self, filename: str, encoded_payload: str) -> Optional[Path]:
        """Decode *encoded_payload* and write it as ``audio_root/<basename>``.

        Returns the written path, or ``None`` when there was nothing to write.
        """

        if not filename or not encoded_payload:
            LOGGER.debug("Skipping audio write; filename or payload is empty")
            return None

        name = safe_basename(filename)
        if name in {"", ".", ".."}:
            raise AudioWriteError(f"Invalid audio filename: {filename!r}")
        if name != filename:
            LOGGER.warning("Audio filename %r reduced to base name %r", filename, name)

        data = decode_audio_payload(encoded_payload)
        target = self._root / name
        with track_file_operation(
            self._event_emitter, "audio.store", filename=name, size=len(data)
        ):
            try:
                atomic_write_bytes(target, data)
            except OSError as error:
                raise AudioWriteError(f"Could not write audio file '{name}': {error}") from error
        LOGGER.info("Stored audio file %s (%d bytes)", name, len(data))
        return target


__all__ = ["AudioBlobStore", "AudioWriteError", "decode_audio_payload"]
