"""
Configuration Management for the Event Budget Dashboard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini text advisor configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for budget advice"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class LiveVoiceSettings(BaseSettings):
    """
    Gemini Live voice assistant configuration.

    The API key is shared with GeminiSettings.
    """

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_LIVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    model_name: str = Field(
        default="gemini-2.5-flash-native-audio-preview-09-2025",
        description="Native-audio model used for the voice session"
    )
    voice_name: str = Field(
        default="Zephyr",
        description="Prebuilt voice for spoken replies"
    )
    input_sample_rate: int = Field(
        default=16000,
        description="Microphone PCM sample rate (Hz)"
    )
    output_sample_rate: int = Field(
        default=24000,
        description="Sample rate of the audio returned by the model (Hz)"
    )
    chunk_samples: int = Field(
        default=4096,
        ge=256,
        description="Samples per microphone chunk sent to the session"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Money
    currency_code: str = Field(
        default="CLP",
        description="Currency all amounts are expressed in"
    )

    # Spreadsheet import/export
    export_filename_prefix: str = Field(
        default="Presupuesto_Eventos",
        description="Prefix of the exported workbook name"
    )
    supported_import_formats: str = Field(
        default="xlsx,xls",
        description="Comma-separated list of importable spreadsheet extensions"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )

    # Remaining-budget colour thresholds (percent of total budget)
    low_budget_threshold_pct: float = Field(
        default=15.0,
        description="Below this remaining percentage the budget is critical"
    )
    warning_budget_threshold_pct: float = Field(
        default=40.0,
        description="Below this remaining percentage the budget needs attention"
    )

    seed_demo_data: bool = Field(
        default=True,
        description="Start the dashboard with the sample events and shared costs"
    )

    @field_validator('warning_budget_threshold_pct')
    @classmethod
    def validate_thresholds(cls, v: float, info) -> float:
        """The warning threshold can never sit below the critical one."""
        low = info.data.get("low_budget_threshold_pct")
        if low is not None and v < low:
            raise ValueError(
                "warning_budget_threshold_pct must be >= low_budget_threshold_pct"
            )
        return v

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_import_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the dashboard works
    # without a Gemini key (advisors report the missing key instead)

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def live_voice(self) -> LiveVoiceSettings:
        return LiveVoiceSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "gemini": lambda: settings.gemini,
        "live_voice": lambda: settings.live_voice,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
