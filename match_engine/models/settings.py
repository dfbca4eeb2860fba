"""
Engine Settings Models for Configuration Management
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from match_engine.utils.exceptions import ConfigurationError


def _env_number(key: str, default: Optional[str], cast):
    """Read a numeric environment variable; unset or blank gives ``default``."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        raw = default
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{key} must be a number, got {raw!r}", config_key=key, config_value=raw, cause=e
        ) from e


class ProviderSettings(BaseModel):
    """Remote embedding/generation provider configuration"""
    base_url: str = Field(default="http://localhost:11434", description="Provider base URL")
    api_key: Optional[str] = Field(default=None, description="Bearer token sent to the provider, if any")
    llm_model: str = Field(default="llama3.1:8b", description="Text-generation model name")
    embedding_model: str = Field(default="nomic-embed-text", description="Embedding model name")
    timeout: float = Field(default=30.0, gt=0.0, le=300.0, description="Per-call timeout in seconds")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Generation temperature")
    max_tokens: int = Field(default=1000, ge=1, description="Maximum tokens to generate")
    dimension: Optional[int] = Field(default=None, ge=1, description="Corpus-wide embedding dimension")
    max_input_chars: int = Field(default=8000, ge=1, description="Input truncation length")


class RetrySettings(BaseModel):
    """Retry policy for provider calls"""
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries after the first attempt")
    retry_delay: float = Field(default=1.0, ge=0.0, le=60.0, description="Base backoff delay in seconds")


class BatchSettings(BaseModel):
    """Batch embedding configuration"""
    chunk_size: int = Field(default=5, ge=1, le=100, description="Texts embedded concurrently per chunk")
    chunk_delay: float = Field(default=0.5, ge=0.0, le=60.0, description="Pause between chunks in seconds")


class MatchWeights(BaseModel):
    """Weights of the four match factors"""
    semantic: float = Field(default=0.40, ge=0.0, le=1.0)
    skills: float = Field(default=0.25, ge=0.0, le=1.0)
    experience: float = Field(default=0.20, ge=0.0, le=1.0)
    keywords: float = Field(default=0.15, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_total_weights(self):
        total = self.semantic + self.skills + self.experience + self.keywords
        if abs(total - 1.0) > 0.01:  # Allow small floating point errors
            raise ValueError('Match weights must sum to 1.0')
        return self


class AnalysisWeights(BaseModel):
    """Weights of the analysis overall score"""
    content: float = Field(default=0.6, ge=0.0, le=1.0)
    ats: float = Field(default=0.4, ge=0.0, le=1.0)
    ats_alert_threshold: int = Field(default=70, ge=0, le=100, description="ATS score below which a critical recommendation is raised")
    max_recommendations: int = Field(default=5, ge=1, le=5)

    @model_validator(mode="after")
    def validate_total_weights(self):
        if abs(self.content + self.ats - 1.0) > 0.01:
            raise ValueError('Analysis weights must sum to 1.0')
        return self


class CacheSettings(BaseModel):
    """Analysis result cache configuration"""
    ttl: float = Field(default=3600.0, gt=0.0, description="Entry lifetime in seconds")
    max_entries: int = Field(default=1000, ge=1, description="LRU capacity")


class MatchingSettings(BaseModel):
    """Recommendation defaults"""
    min_match_score: int = Field(default=50, ge=0, le=100)
    max_recommendations: int = Field(default=10, ge=1, le=50)


class EngineSettings(BaseModel):
    """Complete engine configuration"""
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    match_weights: MatchWeights = Field(default_factory=MatchWeights)
    analysis_weights: AnalysisWeights = Field(default_factory=AnalysisWeights)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="match_engine_db")

    @field_validator("mongo_details")
    @classmethod
    def validate_mongo_details(cls, v):
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError('mongo_details must be a mongodb:// or mongodb+srv:// URL')
        return v

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from environment variables (and .env).

        Raises ConfigurationError naming the variable when a value does not
        parse or falls outside its allowed range.
        """
        load_dotenv()
        env = os.getenv
        try:
            return cls(
                provider=ProviderSettings(
                    base_url=env("LLM_BASE_URL", "http://localhost:11434"),
                    api_key=env("LLM_API_KEY") or None,
                    llm_model=env("LLM_MODEL", "llama3.1:8b"),
                    embedding_model=env("EMBED_MODEL", "nomic-embed-text"),
                    timeout=_env_number("LLM_TIMEOUT", "30", float),
                    temperature=_env_number("LLM_TEMPERATURE", "0.7", float),
                    max_tokens=_env_number("LLM_MAX_TOKENS", "1000", int),
                    dimension=_env_number("EMBED_DIMENSION", None, int),
                ),
                retry=RetrySettings(
                    max_retries=_env_number("LLM_MAX_RETRIES", "3", int),
                    retry_delay=_env_number("LLM_RETRY_DELAY", "1.0", float),
                ),
                batch=BatchSettings(
                    chunk_size=_env_number("EMBED_BATCH_SIZE", "5", int),
                    chunk_delay=_env_number("EMBED_BATCH_DELAY", "0.5", float),
                ),
                cache=CacheSettings(
                    ttl=_env_number("ANALYSIS_CACHE_TTL", "3600", float),
                    max_entries=_env_number("ANALYSIS_CACHE_MAX_ENTRIES", "1000", int),
                ),
                matching=MatchingSettings(
                    min_match_score=_env_number("MIN_MATCH_SCORE", "50", int),
                    max_recommendations=_env_number("MAX_RECOMMENDATIONS", "10", int),
                ),
                mongo_details=env("MONGO_DETAILS", "mongodb://localhost:27017"),
                db_name=env("DB_NAME", "match_engine_db"),
            )
        except ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(p) for p in first["loc"]) or e.title
            raise ConfigurationError(
                f"Invalid engine configuration for {e.title}: {first['msg']}",
                config_key=key,
                config_value=first.get("input"),
                cause=e,
            ) from e
