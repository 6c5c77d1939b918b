"""
Environment-level configuration.

Values come from the process environment (optionally seeded from a .env file
via python-dotenv) and are frozen into a `Settings` object that is handed to
the pipeline at construction. Nothing here is per-request.
"""

import os
import tempfile
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from article_audio.errors import ConfigError

TTS_PROVIDERS = ("auto", "elevenlabs", "edge", "gtts")
PUBLISH_TARGETS = ("gcs", "local")

DEFAULT_ARTICLE_API_URL = "https://mercury.postlight.com/parser"
DEFAULT_WORKSPACE_DIR = os.path.join(tempfile.gettempdir(), "article-audio")

# ElevenLabs voices that read long-form articles well:
# - "21m00Tcm4TlvDq8ikWAM" (Rachel) - Female, professional, clear - DEFAULT
# - "pNInz6obpgDQGcFmaJgB" (Adam) - Male, deep, clear
# - "EXAVITQu4vr4xnSDxMaL" (Bella) - Warm, professional
DEFAULT_ELEVENLABS_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_ELEVENLABS_MODEL_ID = "eleven_turbo_v2_5"

# Edge-TTS options:
# - "en-US-AriaNeural" (US English, Female) - DEFAULT
# - "en-US-GuyNeural" (US English, Male)
# - "en-GB-SoniaNeural" (UK English, Female)
DEFAULT_EDGE_VOICE = "en-US-AriaNeural"


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(name: str, value: Optional[str], *, default: int, problems: List[str]) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        problems.append(f"{name} must be an integer, got {value!r}")
        return default


def _to_float(name: str, value: Optional[str], *, default: float, problems: List[str]) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        problems.append(f"{name} must be a number, got {value!r}")
        return default


@dataclass(frozen=True)
class Settings:
    article_api_key: str
    article_api_url: str = DEFAULT_ARTICLE_API_URL
    article_api_timeout: float = 30.0

    tts_provider: str = "auto"
    elevenlabs_api_key: str = ""
    elevenlabs_voice_id: str = DEFAULT_ELEVENLABS_VOICE_ID
    elevenlabs_model_id: str = DEFAULT_ELEVENLABS_MODEL_ID
    edge_voice: str = DEFAULT_EDGE_VOICE
    tts_language: str = "en"
    gtts_tld: str = "com"

    publish_target: str = "gcs"
    gcp_project_id: Optional[str] = None
    gcs_bucket_name: str = ""
    gcs_public: bool = True
    output_dir: str = "output"

    workspace_dir: str = DEFAULT_WORKSPACE_DIR
    max_chunk_size: int = 5000
    max_concurrency: int = 4
    isolate_runs: bool = False
    audio_format: str = "mp3"

    log_level: str = "INFO"
    log_json: bool = False

    def problems(self) -> List[str]:
        """Return every validation problem (empty list when valid)."""
        problems = []
        if not self.article_api_key:
            problems.append("ARTICLE_API_KEY is required")
        if not self.article_api_url:
            problems.append("ARTICLE_API_URL is required")
        if self.article_api_timeout <= 0:
            problems.append("ARTICLE_API_TIMEOUT must be positive")
        if self.tts_provider not in TTS_PROVIDERS:
            problems.append(f"TTS_PROVIDER must be one of {', '.join(TTS_PROVIDERS)}")
        if self.tts_provider == "elevenlabs" and not self.elevenlabs_api_key:
            problems.append("ELEVENLABS_API_KEY is required when TTS_PROVIDER=elevenlabs")
        if self.publish_target not in PUBLISH_TARGETS:
            problems.append(f"PUBLISH_TARGET must be one of {', '.join(PUBLISH_TARGETS)}")
        if self.publish_target == "gcs" and not self.gcs_bucket_name:
            problems.append("GCS_BUCKET_NAME is required when PUBLISH_TARGET=gcs")
        if self.publish_target == "local" and not self.output_dir:
            problems.append("OUTPUT_DIR is required when PUBLISH_TARGET=local")
        if not self.workspace_dir:
            problems.append("WORKSPACE_DIR is required")
        if self.max_chunk_size <= 0:
            problems.append("MAX_CHUNK_SIZE must be positive")
        if self.max_concurrency <= 0:
            problems.append("MAX_CONCURRENCY must be positive")
        if not self.audio_format:
            problems.append("AUDIO_FORMAT is required")
        return problems

    def validate(self) -> "Settings":
        problems = self.problems()
        if problems:
            raise ConfigError(problems)
        return self


def load_settings(
    env_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides,
) -> Settings:
    """
    Build validated settings from the environment (and `.env`, if present).
    Keyword overrides replace fields before validation, e.g. publish_target="local".
    """
    if environ is None:
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()
        environ = os.environ

    problems: List[str] = []
    settings = Settings(
        article_api_key=environ.get("ARTICLE_API_KEY", ""),
        article_api_url=environ.get("ARTICLE_API_URL", DEFAULT_ARTICLE_API_URL),
        article_api_timeout=_to_float(
            "ARTICLE_API_TIMEOUT", environ.get("ARTICLE_API_TIMEOUT"), default=30.0, problems=problems
        ),
        tts_provider=environ.get("TTS_PROVIDER", "auto").strip().lower(),
        elevenlabs_api_key=environ.get("ELEVENLABS_API_KEY", ""),
        elevenlabs_voice_id=environ.get("ELEVENLABS_VOICE_ID", DEFAULT_ELEVENLABS_VOICE_ID),
        elevenlabs_model_id=environ.get("ELEVENLABS_MODEL_ID", DEFAULT_ELEVENLABS_MODEL_ID),
        edge_voice=environ.get("TTS_EDGE_VOICE", DEFAULT_EDGE_VOICE),
        tts_language=environ.get("TTS_LANGUAGE", "en"),
        gtts_tld=environ.get("TTS_GTTS_TLD", "com"),
        publish_target=environ.get("PUBLISH_TARGET", "gcs").strip().lower(),
        gcp_project_id=environ.get("GCP_PROJECT_ID") or None,
        gcs_bucket_name=environ.get("GCS_BUCKET_NAME", ""),
        gcs_public=_to_bool(environ.get("GCS_PUBLIC"), default=True),
        output_dir=environ.get("OUTPUT_DIR", "output"),
        workspace_dir=environ.get("WORKSPACE_DIR", DEFAULT_WORKSPACE_DIR),
        max_chunk_size=_to_int("MAX_CHUNK_SIZE", environ.get("MAX_CHUNK_SIZE"), default=5000, problems=problems),
        max_concurrency=_to_int("MAX_CONCURRENCY", environ.get("MAX_CONCURRENCY"), default=4, problems=problems),
        isolate_runs=_to_bool(environ.get("ISOLATE_RUNS"), default=False),
        audio_format=environ.get("AUDIO_FORMAT", "mp3").strip().lower(),
        log_level=environ.get("LOG_LEVEL", "INFO").strip().upper(),
        log_json=_to_bool(environ.get("LOG_JSON"), default=False),
    )
    if overrides:
        settings = replace(settings, **overrides)
    problems.extend(settings.problems())
    if problems:
        raise ConfigError(problems)
    return settings
