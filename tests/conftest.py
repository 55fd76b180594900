from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from app.config import AppSettings, LayoutSettings, MapSettings, S3Settings


def _clear_sitemap_env() -> None:
    for key in list(os.environ):
        if key.startswith("SITEMAP_"):
            os.environ.pop(key, None)


_clear_sitemap_env()


@pytest.fixture(autouse=True)
def clear_sitemap_env() -> Generator[None, None, None]:
    _clear_sitemap_env()
    yield
    _clear_sitemap_env()


@pytest.fixture
def s3_settings() -> S3Settings:
    return S3Settings(
        bucket="map-bucket",
        key="site/map_info.json",
        region="us-east-1",
        endpoint_url="http://stubbed-s3.local",
        access_key_id="test",
        secret_access_key="test",
        session_token=None,
        use_path_style=True,
    )


@pytest.fixture
def map_settings(tmp_path: Path, s3_settings: S3Settings) -> MapSettings:
    return MapSettings(
        store="filesystem",
        store_dir=tmp_path / "generate" / "map",
        document_name="map_info.json",
        emit_c_sources=True,
        pin_home=False,
        s3=s3_settings,
    )


@pytest.fixture
def map_settings_factory(map_settings: MapSettings) -> Callable[..., MapSettings]:
    def _factory(**overrides: object) -> MapSettings:
        return map_settings.model_copy(update=overrides)

    return _factory


@pytest.fixture
def app_settings(map_settings: MapSettings) -> AppSettings:
    return AppSettings(map=map_settings, layout=LayoutSettings())


@pytest.fixture
def app_settings_factory(
    map_settings_factory: Callable[..., MapSettings],
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(map=map_settings_factory(**overrides), layout=LayoutSettings())

    return _factory
