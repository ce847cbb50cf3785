"""Shared fixtures: config files, listing stores and the fake rendering backend."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

# Keep log files out of the working tree.
os.environ.setdefault("RENTAL_CRAWLER_HOME", tempfile.mkdtemp(prefix="rental-crawler-tests-"))

from fakes import FakeItem, FakeRenderer, bump_mtime, subscription_payload  # noqa: E402
from rental_crawler.config import ConfigLocator, ConfigRepository  # noqa: E402
from rental_crawler.config.loader import CONFIG_ENV_VAR  # noqa: E402
from rental_crawler.infra import ListingStore, SQLiteManager  # noqa: E402
from rental_crawler.records import Listing  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def make_item() -> Callable[..., FakeItem]:
    def _factory(index: int = 1, **overrides: Any) -> FakeItem:
        base = {
            "external_id": f"R{index}",
            "link": f"/rent-detail-{index}.html",
            "title": f"Sunny flat {index}",
            "styles": ("整層住家", "2房1廳1衛", f"{20 + index}坪", f"{index}F/5F"),
            "area": "大安區",
            "address": f"復興南路{index}段",
            "price": f"{20000 + index}元/月",
        }
        base.update(overrides)
        return FakeItem(**base)

    return _factory


@pytest.fixture
def make_listing() -> Callable[..., Listing]:
    def _factory(external_id: str = "R1", **overrides: Any) -> Listing:
        base = {
            "external_id": external_id,
            "link": f"https://rent.example.com/rent-detail-{external_id}.html",
            "title": "Sunny flat",
            "property_type": "整層住家",
            "layout": "2房1廳1衛",
            "size": "22坪",
            "floor": "3F/5F",
            "area": "大安區",
            "address": "復興南路1段",
            "price": "20000元/月",
        }
        base.update(overrides)
        return Listing(**base)

    return _factory


@pytest.fixture
def storage_manager() -> SQLiteManager:
    manager = SQLiteManager()
    yield manager
    manager.close_all()


@pytest.fixture
def listing_store(tmp_path: Path, storage_manager: SQLiteManager) -> ListingStore:
    return ListingStore(storage_manager, tmp_path / "listings.db")


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write ``config.yaml`` under ``tmp_path``; later calls bump the mtime."""

    path = tmp_path / "config.yaml"

    def _write(subscriptions: list[dict[str, Any]] | None = None, **settings: Any) -> Path:
        payload: dict[str, Any] = {"store_location": "listings.db"}
        payload.update(settings)
        payload["subscriptions"] = (
            [subscription_payload()] if subscriptions is None else subscriptions
        )
        existed = path.exists()
        path.write_text(yaml.safe_dump(payload, allow_unicode=True), encoding="utf-8")
        if existed:
            bump_mtime(path)
        return path

    return _write


@pytest.fixture
def config_repository(write_config: Callable[..., Path]) -> ConfigRepository:
    path = write_config()
    return ConfigRepository(ConfigLocator(config_path=path))
