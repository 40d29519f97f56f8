"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

WEIGHT_SUM_TOLERANCE = 1e-6


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class ScorerName(str, Enum):
    """Scorers the composite engine can run."""

    SIGNALS = "signals"
    KEYWORD_OVERLAP = "keyword_overlap"


class ChannelType(str, Enum):
    """Outbound message channel implementations."""

    WEBHOOK = "webhook"
    MOCK = "mock"


def _duration_field(value: str, label: str, min_seconds: int, max_seconds: int) -> str:
    try:
        seconds = parse_duration(value)
        validate_duration_range(seconds, min_seconds, max_seconds, label=label)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return value


class ScoringWeights(BaseModel):
    """Weights of the five match components.

    The weighted sum is the final score, so the weights must sum to 1.0.
    """

    skill: float = Field(0.5, ge=0.0, le=1.0)
    tool: float = Field(0.1, ge=0.0, le=1.0)
    category: float = Field(0.1, ge=0.0, le=1.0)
    work_mode: float = Field(0.1, ge=0.0, le=1.0)
    semantic: float = Field(0.2, ge=0.0, le=1.0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_sum(self):
        total = self.skill + self.tool + self.category + self.work_mode + self.semantic
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.6f}")
        return self


class MatchingConfig(BaseModel):
    """Scoring and match-cache settings."""

    cache_ttl: str = Field("24h", description="How long a computed match stays fresh")
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    scorers: List[ScorerName] = Field(
        default_factory=lambda: [ScorerName.SIGNALS],
        description="Scorers to run; the best final score wins",
    )
    embedding_dimensions: int = Field(384, ge=16, le=4096)
    signal_cache_size: int = Field(
        1024, ge=0, description="Analyzed-signal LRU entries (0 disables the cache)"
    )

    cache_ttl_seconds: Optional[int] = None

    model_config = {"use_enum_values": True}

    @field_validator("cache_ttl")
    @classmethod
    def validate_cache_ttl(cls, v: str) -> str:
        return _duration_field(v, "cache_ttl", min_seconds=60, max_seconds=30 * 86400)

    @field_validator("scorers")
    @classmethod
    def validate_scorers(cls, v: List[ScorerName]) -> List[str]:
        names = [ScorerName(name).value for name in v]
        if ScorerName.SIGNALS.value not in names:
            raise ValueError("scorers must include 'signals'")
        if len(set(names)) != len(names):
            raise ValueError("scorers must not contain duplicates")
        # The signal scorer always runs first.
        return [ScorerName.SIGNALS.value] + [n for n in names if n != ScorerName.SIGNALS.value]

    @model_validator(mode="after")
    def compute_fields(self):
        self.cache_ttl_seconds = parse_duration(self.cache_ttl)
        return self


class AnalysisConfig(BaseModel):
    """Text analyzer (LLM) settings."""

    enabled: bool = Field(True, description="Call the analyzer API; false forces the keyword heuristic")
    api_url: str = Field("https://api.anthropic.com/v1/messages", min_length=1)
    api_version: str = Field("2023-06-01", min_length=1)
    model: str = Field("claude-3-haiku-20240307", min_length=1)
    max_tokens: int = Field(1500, ge=64, le=8192)
    temperature: float = Field(0.3, ge=0.0, le=1.0)
    request_timeout: int = Field(30, ge=1, le=300, description="Seconds")
    min_call_interval_seconds: float = Field(
        1.0, ge=0.0, le=60.0, description="Minimum spacing between analyzer calls"
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"api_url must be an http(s) URL, got: '{v}'")
        return stripped


class NotificationsConfig(BaseModel):
    """Alert delivery settings."""

    channel: ChannelType = Field(ChannelType.WEBHOOK)
    request_timeout: int = Field(10, ge=1, le=120, description="Seconds")
    sends_per_second: float = Field(10.0, gt=0.0, le=1000.0)
    burst: int = Field(1, ge=1, le=1000)
    job_link_base_url: str = Field("https://campuspe.com/jobs", min_length=1)
    claim_timeout: str = Field(
        "15m", description="Age after which an unconfirmed send claim is purged"
    )

    claim_timeout_seconds: Optional[int] = None

    model_config = {"use_enum_values": True}

    @field_validator("job_link_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("claim_timeout")
    @classmethod
    def validate_claim_timeout(cls, v: str) -> str:
        return _duration_field(v, "claim_timeout", min_seconds=60, max_seconds=7 * 86400)

    @model_validator(mode="after")
    def compute_fields(self):
        self.claim_timeout_seconds = parse_duration(self.claim_timeout)
        return self


class SweepConfig(BaseModel):
    """Bulk sweep execution settings."""

    progress_every: int = Field(10, ge=1, description="Log progress every N items")
    max_concurrent_sweeps: int = Field(2, ge=1, le=16)
    maintenance_interval: str = Field("15m")

    maintenance_interval_seconds: Optional[int] = None

    @field_validator("maintenance_interval")
    @classmethod
    def validate_maintenance_interval(cls, v: str) -> str:
        return _duration_field(v, "maintenance_interval", min_seconds=60, max_seconds=86400)

    @model_validator(mode="after")
    def compute_fields(self):
        self.maintenance_interval_seconds = parse_duration(self.maintenance_interval)
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO)
    format: LogFormat = Field(LogFormat.KEY_VALUE)

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for campusmatch."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    sweep: SweepConfig = Field(default_factory=SweepConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}
