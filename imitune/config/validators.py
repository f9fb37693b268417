"""Configuration validation schemas using Pydantic."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class AudioConfig(BaseModel):
    """Capture and recording session configuration."""

    device: Optional[int] = Field(default=None, description="Audio device index")
    sample_rate: Optional[int] = Field(
        default=None, description="Capture sample rate (None = device default)"
    )
    channels: int = Field(default=1, description="Number of capture channels")
    chunk_size: int = Field(default=1024, description="Frames per capture block")

    max_recording_duration: float = Field(
        default=10.0, description="Maximum recording duration in seconds"
    )
    silence_threshold: float = Field(
        default=0.01, description="Absolute amplitude treated as content"
    )
    buffer_size_limit: int = Field(
        default=50, description="Maximum raw capture buffer size in MB"
    )
    enable_buffer_monitoring: bool = Field(
        default=True, description="Enable capture buffer monitoring"
    )

    @field_validator("sample_rate")
    @classmethod
    def validate_sample_rate(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 8000 <= v <= 192000:
            raise ValueError("Sample rate must be between 8000 and 192000")
        return v

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: int) -> int:
        if v not in (1, 2):
            raise ValueError("Channels must be 1 (mono) or 2 (stereo)")
        return v

    @field_validator("max_recording_duration")
    @classmethod
    def validate_max_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Max recording duration must be positive")
        if v > 300:
            raise ValueError("Max recording duration cannot exceed 5 minutes")
        return v

    @field_validator("silence_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("Silence threshold must be in [0, 1)")
        return v

    @field_validator("buffer_size_limit")
    @classmethod
    def validate_buffer_limit(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Buffer size limit cannot be negative")
        return v


class PreprocessingConfig(BaseModel):
    """Model input shaping configuration."""

    target_sample_rate: int = Field(default=32000, description="Model sample rate")
    target_duration_seconds: float = Field(
        default=10.0, description="Fixed model input duration"
    )
    resample_method: str = Field(
        default="polyphase", description="Resampling method (polyphase or linear)"
    )

    @field_validator("target_sample_rate")
    @classmethod
    def validate_target_rate(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Target sample rate must be positive")
        return v

    @field_validator("target_duration_seconds")
    @classmethod
    def validate_target_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Target duration must be positive")
        return v

    @field_validator("resample_method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        valid_methods = ("polyphase", "linear")
        if v not in valid_methods:
            raise ValueError(f"Resample method must be one of: {valid_methods}")
        return v


class WaveformConfig(BaseModel):
    """Waveform display configuration."""

    width: int = Field(default=600, description="Rendering width in columns")
    epsilon: float = Field(default=0.001, description="Minimum stroked excursion")
    min_display_duration: float = Field(
        default=0.1, description="Floor for the trimmed duration in seconds"
    )

    @field_validator("width")
    @classmethod
    def validate_width(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Waveform width must be at least 1")
        return v


class EmbeddingConfig(BaseModel):
    """Inference engine configuration."""

    model_path: Optional[str] = Field(
        default=None, description="ONNX model file path or http(s) URL"
    )
    input_name: str = Field(default="waveform", description="Input tensor name")
    output_name: str = Field(default="embedding", description="Output tensor name")
    embedding_dim: Optional[int] = Field(
        default=None, description="Expected embedding dimension"
    )
    providers: List[str] = Field(
        default=["CPUExecutionProvider"], description="onnxruntime providers"
    )
    retry_transient: bool = Field(
        default=False, description="Retry once on transient engine unavailability"
    )

    @field_validator("embedding_dim")
    @classmethod
    def validate_dim(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Embedding dimension must be positive")
        return v


class ApiConfig(BaseModel):
    """Search and feedback endpoints."""

    search_url: Optional[str] = Field(default=None, description="Search endpoint")
    feedback_url: Optional[str] = Field(default=None, description="Feedback endpoint")
    timeout: float = Field(default=15.0, description="HTTP timeout in seconds")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration validation."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )
    directory: str = Field(default="logs", description="Log directory")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class ImituneConfig(BaseModel):
    """Main ImiTune configuration validation."""

    app: Dict[str, Any] = Field(default_factory=dict)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    waveform: WaveformConfig = Field(default_factory=WaveformConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "extra": "allow",
        "validate_assignment": True,
    }

    @model_validator(mode="before")
    @classmethod
    def handle_legacy_api_keys(cls, data: Any) -> Any:
        """Accept the web client's env-style keys (api_url/model_url)."""
        if isinstance(data, dict):
            data = dict(data)
            api = dict(data.get("api") or {})
            if "api_url" in data and "search_url" not in api:
                api["search_url"] = data.pop("api_url")
            if api:
                data["api"] = api
            embedding = dict(data.get("embedding") or {})
            if "model_url" in data and "model_path" not in embedding:
                embedding["model_path"] = data.pop("model_url")
            if embedding:
                data["embedding"] = embedding
        return data


def validate_config(config_dict: Dict[str, Any]) -> ImituneConfig:
    """Validate configuration dictionary using Pydantic schemas.

    Args:
        config_dict: Configuration dictionary to validate

    Returns:
        Validated ImituneConfig instance

    Raises:
        ValueError: If configuration validation fails
    """
    try:
        return ImituneConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
