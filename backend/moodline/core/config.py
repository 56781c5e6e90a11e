from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except Exception:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    api_url: str = Field(
        default="http://localhost:5000/api",
        validation_alias=AliasChoices("API_URL", "VITE_API_URL"),
    )

    docs_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))

    classifier_backend: str = Field(
        default="remote",
        validation_alias=AliasChoices("CLASSIFIER_BACKEND"),
    )
    classify_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("CLASSIFY_TIMEOUT_SECONDS"),
    )
    collaborator_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices("COLLABORATOR_TIMEOUT_SECONDS"),
    )
    max_input_chars: int = Field(
        default=3000,
        validation_alias=AliasChoices("MAX_INPUT_CHARS"),
    )
    warmup_retry_seconds: int = Field(
        default=5,
        validation_alias=AliasChoices("MODEL_WARMUP_RETRY_SECONDS"),
    )

    embedded_model_name: str = Field(
        default="j-hartmann/emotion-english-distilroberta-base",
        validation_alias=AliasChoices("EMBEDDED_MODEL_NAME"),
    )
    embedded_device: str = Field(
        default="cuda:0",
        validation_alias=AliasChoices("EMBEDDED_DEVICE"),
    )

    enable_recommendations: bool = Field(
        default=True,
        validation_alias=AliasChoices("ENABLE_RECOMMENDATIONS"),
    )
    recommendation_confidence_threshold: float = Field(
        default=0.7,
        validation_alias=AliasChoices("RECOMMENDATION_CONFIDENCE_THRESHOLD"),
    )
    recommendation_types_raw: str = Field(
        default="movie,book,music,activity",
        validation_alias=AliasChoices("RECOMMENDATION_TYPES"),
    )

    allowed_backends_raw: str = Field(
        default="remote,embedded,mock",
        validation_alias=AliasChoices("CLASSIFIER_ALLOWED_BACKENDS"),
    )

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("classifier_backend", mode="before")
    @classmethod
    def _lower_backend(cls, value):
        if value is None:
            return "remote"
        return str(value).strip().lower()

    @property
    def recommendation_types(self) -> list[str]:
        return _parse_list_value(self.recommendation_types_raw)

    @property
    def allowed_backends(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.allowed_backends_raw)]


@lru_cache
def get_settings() -> Settings:
    return Settings()
