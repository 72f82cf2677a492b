"""
Live Voice Assistant

DESIGN DECISION: The voice assistant is a Gemini Live session. We send
16-bit mono PCM at 16 kHz and receive 16-bit mono PCM at 24 kHz plus
incremental transcripts of both sides.

This module owns three things:
1. PCM helpers (float samples <-> PCM16, resampling, WAV wrapping)
2. TranscriptLog, which assembles transcript fragments into turns
3. LiveVoiceSession, which drives one connection

Like the text advisor, the session only sees the system instruction it is
given. It never touches the store.
"""

import io
import wave
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Callable, Iterator, Optional, Sequence

import numpy as np
import structlog
from google import genai
from google.genai import types
from pydantic import BaseModel, Field

from event_budget.agents.ai_agents import AdvisoryError
from event_budget.config import LiveVoiceSettings, get_settings


logger = structlog.get_logger(__name__)


CONNECTION_ERROR_MESSAGE = "Error en la conexión. Por favor, intenta de nuevo."
MICROPHONE_ERROR_MESSAGE = (
    "No se pudo acceder al micrófono. "
    "Por favor, revisa los permisos en tu navegador."
)
GREETING_MESSAGE = "Hola, ¿en qué puedo ayudarte hoy?"

PCM16_MAX = 32767
PCM16_MIN = -32768
PCM16_SCALE = 32768.0


class AssistantState(str, Enum):
    """What the voice assistant is doing right now."""
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    LISTENING = "LISTENING"
    SPEAKING = "SPEAKING"
    ERROR = "ERROR"


class VoiceSessionError(AdvisoryError):
    """The live session could not be opened or broke mid-conversation."""
    pass


class AudioFormatError(AdvisoryError):
    """Recorded audio is not 16-bit PCM WAV."""
    pass


# =============================================================================
# PCM HELPERS
# =============================================================================

def float_to_pcm16(samples: Sequence[float]) -> bytes:
    """
    Float samples in [-1, 1] to little-endian 16-bit PCM.

    Values outside the range are clipped.
    """
    scaled = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0) * PCM16_SCALE
    return np.clip(scaled, PCM16_MIN, PCM16_MAX).astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    """Little-endian 16-bit PCM to float samples. A trailing odd byte is ignored."""
    pcm = np.frombuffer(data[: len(data) - len(data) % 2], dtype="<i2")
    return pcm.astype(np.float64) / PCM16_SCALE


def resample(samples: Sequence[float], from_rate: int, to_rate: int) -> np.ndarray:
    """Linear-interpolation resampling."""
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError("Sample rates must be positive")
    samples = np.array(samples, dtype=np.float64)
    if from_rate == to_rate or samples.size == 0:
        return samples

    out_length = max(1, round(samples.size * to_rate / from_rate))
    positions = np.arange(out_length) * (from_rate / to_rate)
    # Positions past the last sample hold its value
    return np.interp(positions, np.arange(samples.size), samples)


def pcm16_to_wav(data: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw PCM16 in a WAV container (for st.audio playback)."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(data)
    return buffer.getvalue()


def wav_to_pcm16(data: bytes, target_rate: int) -> bytes:
    """
    Decode a WAV recording into mono PCM16 at target_rate.

    Stereo recordings are averaged down to mono.

    Raises:
        AudioFormatError: If the WAV cannot be read or is not 16-bit
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            channels = wav.getnchannels()
            sample_width = wav.getsampwidth()
            rate = wav.getframerate()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as e:
        raise AudioFormatError(f"Unreadable WAV recording: {e}") from e

    if sample_width != 2:
        raise AudioFormatError(f"Expected 16-bit audio, got {sample_width * 8}-bit")

    samples = pcm16_to_float(frames)
    if channels > 1:
        usable = samples.size - samples.size % channels
        samples = samples[:usable].reshape(-1, channels).mean(axis=1)

    return float_to_pcm16(resample(samples, rate, target_rate))


def chunk_pcm(data: bytes, chunk_samples: int) -> Iterator[bytes]:
    """Split PCM16 into chunks of chunk_samples samples (last may be shorter)."""
    size = chunk_samples * 2
    for start in range(0, len(data), size):
        yield data[start:start + size]


# =============================================================================
# TRANSCRIPT
# =============================================================================

class TranscriptTurn(BaseModel):
    """One exchange: what the user said and what the model answered."""

    id: int
    user: str = ""
    model: str = ""
    complete: bool = False


class TranscriptLog(BaseModel):
    """
    Assembles streamed transcript fragments into turns.

    - Input text extends the user side of the open turn, or opens a new one
    - Output text extends the model side of the open turn
    - Output with no open turn is dropped
    - turn_complete closes the open turn
    """

    turns: list[TranscriptTurn] = Field(default_factory=list)

    @property
    def open_turn(self) -> Optional[TranscriptTurn]:
        if self.turns and not self.turns[-1].complete:
            return self.turns[-1]
        return None

    def add_input(self, text: str) -> None:
        if not text:
            return
        turn = self.open_turn
        if turn is None:
            self.turns.append(TranscriptTurn(id=len(self.turns) + 1, user=text))
        else:
            turn.user += text

    def add_output(self, text: str) -> None:
        turn = self.open_turn
        if not text or turn is None:
            return
        turn.model += text

    def complete_turn(self) -> None:
        turn = self.open_turn
        if turn is not None:
            turn.complete = True

    def apply(self, server_content: Any) -> None:
        """Fold one server_content message into the log."""
        input_transcription = getattr(server_content, "input_transcription", None)
        if input_transcription is not None:
            self.add_input(input_transcription.text or "")

        output_transcription = getattr(server_content, "output_transcription", None)
        if output_transcription is not None:
            self.add_output(output_transcription.text or "")

        if getattr(server_content, "turn_complete", False):
            self.complete_turn()

    def clear(self) -> None:
        self.turns.clear()


def _inline_audio(server_content: Any) -> Optional[bytes]:
    """Audio bytes carried by the first part of the model turn, if any."""
    model_turn = getattr(server_content, "model_turn", None)
    parts = getattr(model_turn, "parts", None)
    if not parts:
        return None
    inline_data = getattr(parts[0], "inline_data", None)
    return getattr(inline_data, "data", None) or None


class VoiceExchange(BaseModel):
    """Result of one spoken question: the reply audio and the transcript."""

    audio: bytes = b""
    sample_rate: int = 24000
    turns: list[TranscriptTurn] = Field(default_factory=list)

    def wav(self) -> bytes:
        return pcm16_to_wav(self.audio, self.sample_rate)


# =============================================================================
# SESSION
# =============================================================================

class LiveVoiceSession:
    """
    Drives one Gemini Live connection.

    Usage:
        session = LiveVoiceSession()
        async with session.connect(instruction):
            await session.send_audio(pcm)
            await session.end_audio()
            reply = await session.receive_turn()
    """

    def __init__(
        self,
        settings: Optional[LiveVoiceSettings] = None,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        on_audio: Optional[Callable[[bytes], None]] = None,
    ):
        """
        Args:
            settings: Live settings; loaded from the environment if None
            api_key: Gemini key; taken from GeminiSettings if None
            client: A google-genai Client (or a stand-in with the same shape)
            on_audio: Called with every received 24 kHz PCM chunk
        """
        self._settings = settings or get_settings().live_voice
        if client is None:
            client = genai.Client(api_key=api_key or get_settings().gemini.api_key)
        self._client = client
        self._on_audio = on_audio
        self._session = None
        self._state = AssistantState.IDLE
        self.transcript = TranscriptLog()

    @property
    def state(self) -> AssistantState:
        return self._state

    def _set_state(self, state: AssistantState) -> None:
        if state != self._state:
            logger.debug("voice_state_changed", old=self._state.value, new=state.value)
        self._state = state

    def _connect_config(self, system_instruction: str) -> types.LiveConnectConfig:
        return types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            system_instruction=system_instruction,
            input_audio_transcription=types.AudioTranscriptionConfig(),
            output_audio_transcription=types.AudioTranscriptionConfig(),
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=self._settings.voice_name,
                    )
                )
            ),
        )

    @asynccontextmanager
    async def connect(self, system_instruction: str) -> AsyncIterator["LiveVoiceSession"]:
        """
        Open the session. State is LISTENING inside the block, IDLE after a
        clean exit and ERROR after a failure.

        Raises:
            VoiceSessionError: If connecting or the conversation fails
        """
        self._set_state(AssistantState.CONNECTING)
        self.transcript.clear()

        try:
            async with self._client.aio.live.connect(
                model=self._settings.model_name,
                config=self._connect_config(system_instruction),
            ) as session:
                self._session = session
                self._set_state(AssistantState.LISTENING)
                yield self
        except Exception as e:
            self._set_state(AssistantState.ERROR)
            logger.error(
                "voice_session_failed",
                error=str(e),
                error_type=type(e).__name__,
                model=self._settings.model_name,
            )
            raise VoiceSessionError(str(e) or type(e).__name__) from e
        else:
            self._set_state(AssistantState.IDLE)
        finally:
            self._session = None

    def _require_session(self):
        if self._session is None:
            raise VoiceSessionError("Voice session is not connected")
        return self._session

    async def send_audio(self, pcm: bytes) -> int:
        """
        Stream microphone PCM (16 kHz mono) in fixed-size chunks.

        Returns the number of chunks sent.
        """
        session = self._require_session()
        mime_type = f"audio/pcm;rate={self._settings.input_sample_rate}"
        sent = 0
        for chunk in chunk_pcm(pcm, self._settings.chunk_samples):
            await session.send_realtime_input(
                audio=types.Blob(data=chunk, mime_type=mime_type)
            )
            sent += 1
        return sent

    async def end_audio(self) -> None:
        """Tell the server the microphone stream has ended."""
        await self._require_session().send_realtime_input(audio_stream_end=True)

    def handle_message(self, message: Any) -> Optional[bytes]:
        """Apply one server message: transcript, state and audio playback."""
        content = getattr(message, "server_content", None)
        if content is None:
            return None

        self.transcript.apply(content)

        audio = _inline_audio(content)
        if audio:
            self._set_state(AssistantState.SPEAKING)
            if self._on_audio is not None:
                self._on_audio(audio)
        return audio

    async def receive_turn(self) -> bytes:
        """
        Consume messages until the model finishes its turn.

        Returns all reply audio of the turn as one PCM16 buffer.
        """
        session = self._require_session()
        audio = bytearray()
        async for message in session.receive():
            chunk = self.handle_message(message)
            if chunk:
                audio.extend(chunk)
        self._set_state(AssistantState.LISTENING)
        return bytes(audio)

    async def converse(self, system_instruction: str, pcm: bytes) -> VoiceExchange:
        """One spoken question in, one spoken answer out."""
        async with self.connect(system_instruction):
            await self.send_audio(pcm)
            await self.end_audio()
            audio = await self.receive_turn()

        return VoiceExchange(
            audio=audio,
            sample_rate=self._settings.output_sample_rate,
            turns=[turn.model_copy() for turn in self.transcript.turns],
        )
