"""Continuous recognition engine built on faster-whisper.

Audio arrives as raw PCM frames (16-bit signed, 16 kHz, mono) through
:meth:`WhisperRecognitionEngine.feed`, typically from the WebSocket. The
engine cuts the stream into overlapping chunks, skips silent ones and
transcribes the rest in a worker thread. Every recognized chunk becomes one
segment; each result event carries all segments of the current session.

The WhisperModel is loaded lazily and cached at module level to avoid
repeated initialization overhead.
"""

import asyncio
import logging

import numpy as np
from faster_whisper import WhisperModel

from voicebro.core.config import get_settings
from voicebro.services.capture.base import BaseRecognitionEngine

logger = logging.getLogger(__name__)

# PCM 16-bit, 16 kHz, mono = 2 bytes/sample * 16000 samples/sec
SAMPLE_RATE = 16_000
_BYTES_PER_SECOND = SAMPLE_RATE * 2

_model_cache: dict[tuple[str, str, str], WhisperModel] = {}


def _load_model(model_size: str, device: str, compute_type: str) -> WhisperModel:
    """Return a cached WhisperModel, loading it on first use."""
    key = (model_size, device, compute_type)
    if key not in _model_cache:
        logger.info(
            "Loading Whisper model: %s (device=%s, compute=%s)",
            model_size,
            device,
            compute_type,
        )
        _model_cache[key] = WhisperModel(model_size, device=device, compute_type=compute_type)
    return _model_cache[key]


def pcm_to_ndarray(pcm_data: bytes) -> np.ndarray:
    """Convert 16-bit signed PCM bytes to a float32 array in [-1.0, 1.0]."""
    usable = len(pcm_data) - (len(pcm_data) % 2)
    return np.frombuffer(pcm_data[:usable], dtype=np.int16).astype(np.float32) / 32768.0


def is_silent(audio: np.ndarray, threshold: float = 0.01) -> bool:
    """Return True when the RMS energy of *audio* is below *threshold*."""
    if audio.size == 0:
        return True
    return float(np.sqrt(np.mean(np.square(audio)))) < threshold


class WhisperRecognitionEngine(BaseRecognitionEngine):
    """Speech recognition over fed PCM audio using faster-whisper.

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        chunk_duration: Seconds of audio per transcription pass.
        overlap_duration: Seconds carried over between chunks to avoid
            cutting words in half.
        silence_threshold: RMS level under which a chunk is skipped.
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str = "cpu",
        compute_type: str = "int8",
        chunk_duration: float = 3.0,
        overlap_duration: float = 0.5,
        silence_threshold: float = 0.01,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._model_size = model_size or get_settings().whisper_model
        self._device = device
        self._compute_type = compute_type
        self._chunk_bytes = int(chunk_duration * _BYTES_PER_SECOND)
        self._overlap_bytes = int(overlap_duration * _BYTES_PER_SECOND)
        self._min_bytes = int(0.5 * _BYTES_PER_SECOND)
        self._silence_threshold = silence_threshold
        self._queue: asyncio.Queue[bytes | None] | None = None
        self._task: asyncio.Task | None = None
        self._segments: list[str] = []

    @property
    def _language(self) -> str | None:
        # Whisper expects ISO 639-1 ("en"), not a BCP-47 tag ("en-US")
        return self.lang.split("-")[0].lower() if self.lang else None

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("Recognition session already started")
        self._segments = []
        queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        task = asyncio.get_running_loop().create_task(self._run(queue))
        # Runs even when the task is cancelled before its first step
        task.add_done_callback(lambda _task: self._finish(queue))
        self._queue = queue
        self._task = task

    def stop(self) -> None:
        if self._queue is not None:
            self._queue.put_nowait(None)

    def abort(self) -> None:
        task = self._task
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def feed(self, pcm: bytes) -> None:
        if self._queue is not None and self._task is not None:
            self._queue.put_nowait(pcm)

    async def _run(self, queue: asyncio.Queue[bytes | None]) -> None:
        """Consume fed audio until stopped or aborted."""
        try:
            model = await asyncio.to_thread(
                _load_model, self._model_size, self._device, self._compute_type
            )
        except Exception:
            logger.exception("Failed to load Whisper model %s", self._model_size)
            self._emit_error("audio-capture")
            return

        buffer = bytearray()
        while True:
            data = await queue.get()
            if data is None:
                break
            buffer.extend(data)
            while len(buffer) >= self._chunk_bytes:
                chunk = bytes(buffer[: self._chunk_bytes])
                del buffer[: self._chunk_bytes - self._overlap_bytes]
                if not await self._recognize(model, chunk):
                    return

        # Flush the tail of the stream
        if len(buffer) >= self._min_bytes:
            await self._recognize(model, bytes(buffer))

    def _finish(self, queue: asyncio.Queue[bytes | None]) -> None:
        """Close the session that owned *queue* and report its end."""
        if self._queue is queue:
            self._task = None
            self._queue = None
        self._emit_end()

    async def _recognize(self, model: WhisperModel, pcm: bytes) -> bool:
        """Transcribe one chunk; returns False if the session must end."""
        audio = pcm_to_ndarray(pcm)
        if is_silent(audio, self._silence_threshold):
            return True

        try:
            text = await asyncio.to_thread(self._transcribe, model, audio)
        except Exception:
            logger.exception("Whisper transcription failed")
            self._emit_error("transcription-failed")
            return False

        if text:
            self._segments.append(f" {text}" if self._segments else text)
            self._emit_result(self._segments)
        return True

    def _transcribe(self, model: WhisperModel, audio: np.ndarray) -> str:
        """Run synchronous transcription (CPU-bound, call via to_thread).

        The segment generator is materialized in the worker thread to avoid
        CTranslate2 cross-thread issues.
        """
        segments, _info = model.transcribe(
            audio,
            language=self._language,
            beam_size=1,
            vad_filter=False,
        )
        return " ".join(seg.text.strip() for seg in segments if seg.text.strip())
