from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator

from inspector.app.models.db_models import PROVIDER_COLORS


def _validate_provider_url(value: str) -> str:
    url = value.strip()
    parsed = urlparse(url)

    if parsed.scheme not in {"http", "https"}:
        raise ValueError("URL must start with http:// or https://")
    if not parsed.hostname:
        raise ValueError("URL must include a valid hostname or IP address")

    try:
        parsed.port
    except ValueError as exc:
        raise ValueError("URL port must be numeric") from exc

    return url


def _validate_color(value: str | None) -> str | None:
    if value is None:
        return None
    color = value.strip().lower()
    if color not in PROVIDER_COLORS:
        raise ValueError(f"color must be one of: {', '.join(PROVIDER_COLORS)}")
    return color


class ProviderRegistration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    url: str
    description: str | None = ""
    color: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name must not be empty")
        return name

    @field_validator("url")
    @classmethod
    def validate_provider_url(cls, value: str) -> str:
        return _validate_provider_url(value)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        return _validate_color(value)


class ProviderUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str | None = None
    url: str | None = None
    color: str | None = None
    is_enabled: bool | None = None

    @field_validator("url")
    @classmethod
    def validate_provider_url(cls, value: str | None) -> str | None:
        return _validate_provider_url(value) if value is not None else None

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        return _validate_color(value)
