from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.compass import CompassLayoutConfig

DEFAULT_CONFIG_PATH = Path("config/app.yaml")

MapStoreKind = Literal["filesystem", "s3", "memory"]


class S3Settings(BaseModel):
    bucket: str = ""
    key: str = "map/map_info.json"
    region: str | None = None
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    use_path_style: bool = False
    timeout_seconds: float = Field(default=10.0, gt=0)


class MapSettings(BaseModel):
    store: MapStoreKind = "filesystem"
    store_dir: Path = Path("generate/map")
    document_name: str = "map_info.json"
    emit_c_sources: bool = True
    pin_home: bool = False
    s3: S3Settings = S3Settings()

    @field_validator("store", mode="before")
    @classmethod
    def normalize_store(cls, value: object) -> str:
        return str(value).strip().lower() if value else "filesystem"

    @field_validator("document_name", mode="after")
    @classmethod
    def ensure_plain_name(cls, value: str) -> str:
        if not value or Path(value).name != value:
            msg = "map.document_name must be a plain file name"
            raise ValueError(msg)
        return value


class LayoutSettings(BaseModel):
    width: float = Field(default=800.0, gt=0)
    height: float = Field(default=600.0, gt=0)
    scale: float = Field(default=20.0, gt=0)

    def to_config(self) -> CompassLayoutConfig:
        return CompassLayoutConfig(width=self.width, height=self.height, scale=self.scale)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SITEMAP_", env_nested_delimiter="__")

    title: str = "Site Map Editor"
    map: MapSettings = MapSettings()
    layout: LayoutSettings = LayoutSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("SITEMAP_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
