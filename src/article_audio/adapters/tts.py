"""
ISpeechSynthesizer adapters: ElevenLabs, Edge-TTS and gTTS.

Priority order for TTS_PROVIDER=auto: ElevenLabs > Edge-TTS > gTTS.
The provider is chosen once, when the pipeline is built. There is no
fallback between providers during a run: a failed chunk fails the run.
"""

import asyncio
import io
import logging
from typing import Optional

from article_audio.config import Settings
from article_audio.domain.models import AudioSegment, TextChunk
from article_audio.errors import ConfigError, SynthesisError
from article_audio.ports.interfaces import ISpeechSynthesizer

logger = logging.getLogger(__name__)


class TextToSpeechSynthesizer(ISpeechSynthesizer):
    """Shared chunk handling; subclasses only turn text into MP3 bytes."""

    name = "tts"
    # Every provider below is asked for MP3.
    audio_format = "mp3"

    def synthesize(self, chunk: TextChunk) -> AudioSegment:
        text = chunk.text.strip()
        if not text:
            raise SynthesisError("refusing to synthesize empty text", chunk_index=chunk.index)
        logger.debug("%s: synthesizing chunk %d (%d chars)", self.name, chunk.index, len(text))
        try:
            data = self.synthesize_text(text)
        except SynthesisError:
            raise
        except Exception as e:
            raise SynthesisError(f"{self.name} failed: {e}", chunk_index=chunk.index, cause=e) from e
        if not data:
            raise SynthesisError(f"{self.name} returned no audio", chunk_index=chunk.index)
        return AudioSegment(index=chunk.index, data=data)

    def synthesize_text(self, text: str) -> bytes:
        raise NotImplementedError


class ElevenLabsSynthesizer(TextToSpeechSynthesizer):
    """Premium quality voices via the ElevenLabs client API."""

    name = "elevenlabs"

    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str,
        output_format: str = "mp3_44100_128",
        client=None,
    ):
        if client is None:
            from elevenlabs.client import ElevenLabs
            client = ElevenLabs(api_key=api_key)
        self._client = client
        self._voice_id = voice_id
        self._model_id = model_id
        self._output_format = output_format

    def synthesize_text(self, text: str) -> bytes:
        response = self._client.text_to_speech.convert(
            text=text,
            voice_id=self._voice_id,
            model_id=self._model_id,
            output_format=self._output_format,
        )
        # convert() streams the audio back in pieces
        if isinstance(response, (bytes, bytearray)):
            return bytes(response)
        audio = bytearray()
        for piece in response:
            if isinstance(piece, (bytes, bytearray)):
                audio.extend(piece)
            elif hasattr(piece, "read"):
                audio.extend(piece.read())
        return bytes(audio)


class EdgeTTSSynthesizer(TextToSpeechSynthesizer):
    """Microsoft Edge neural voices (free, no API key)."""

    name = "edge-tts"

    def __init__(self, voice: str):
        self._voice = voice

    def synthesize_text(self, text: str) -> bytes:
        import edge_tts

        async def generate() -> bytes:
            communicate = edge_tts.Communicate(text, self._voice)
            audio = bytearray()
            async for message in communicate.stream():
                if message.get("type") == "audio":
                    audio.extend(message["data"])
            return bytes(audio)

        # Each worker thread runs its own short-lived event loop.
        return asyncio.run(generate())


class GTTSSynthesizer(TextToSpeechSynthesizer):
    """Google Translate TTS (fallback quality)."""

    name = "gtts"

    def __init__(self, language: str = "en", tld: str = "com", slow: bool = False):
        self._language = language
        self._tld = tld
        self._slow = slow

    def synthesize_text(self, text: str) -> bytes:
        from gtts import gTTS

        buffer = io.BytesIO()
        gTTS(text=text, lang=self._language, slow=self._slow, tld=self._tld).write_to_fp(buffer)
        return buffer.getvalue()


def build_synthesizer(settings: Settings, provider: Optional[str] = None) -> ISpeechSynthesizer:
    """Instantiate the configured provider (`auto` picks by available credentials)."""
    provider = provider or settings.tts_provider
    if provider == "auto":
        provider = "elevenlabs" if settings.elevenlabs_api_key else "edge"

    if provider == "elevenlabs":
        if not settings.elevenlabs_api_key:
            raise ConfigError(["ELEVENLABS_API_KEY is required for the ElevenLabs provider"])
        logger.info(
            "Using ElevenLabs TTS (voice %s, model %s)",
            settings.elevenlabs_voice_id,
            settings.elevenlabs_model_id,
        )
        return ElevenLabsSynthesizer(
            api_key=settings.elevenlabs_api_key,
            voice_id=settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
        )
    if provider == "edge":
        logger.info("Using Edge-TTS with voice %s", settings.edge_voice)
        return EdgeTTSSynthesizer(voice=settings.edge_voice)
    if provider == "gtts":
        logger.info("Using gTTS (%s, tld=%s)", settings.tts_language, settings.gtts_tld)
        return GTTSSynthesizer(language=settings.tts_language, tld=settings.gtts_tld)
    raise ConfigError([f"Unknown TTS provider: {provider!r}"])
