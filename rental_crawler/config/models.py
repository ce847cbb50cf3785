"""Pydantic models describing the crawler configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


class SelectorConfig(BaseModel):
    """CSS selectors used against the search and detail pages.

    ``item_styles`` yields an ordered list whose positions carry the meaning:
    0 = property type, 1 = layout, 2 = size, 3 = floor.
    """

    list_container: str = "#rent-list-app"
    item: str = "section.vue-list-rent-item"
    item_id_attribute: str = "data-bind"
    link: str = "a"
    title: str = "div.item-title"
    item_styles: str = "ul.item-style > li"
    area: str = "div.item-area > a"
    address: str = "div.item-area > span"
    price: str = "div.item-price"
    detail_container: str = "#houseInfo"
    detail_layout: str = "#houseInfo > div.house-pattern > span"
    single_bathroom_marker: str = "1衛"

    @model_validator(mode="after")
    def _validate_non_empty(self) -> "SelectorConfig":
        for name, value in self:
            if not value:
                raise ValueError(f"selector '{name}' cannot be empty")
        return self


class Subscription(BaseModel):
    """A search page watched every round and the webhook it reports to."""

    name: str
    search_url: str = Field(validation_alias=AliasChoices("search_url", "searchUrl"))
    notify_target: str = Field(
        validation_alias=AliasChoices("notify_target", "notifyTarget", "discordWebhookUrl")
    )
    rule_out_single_bathroom: bool = Field(
        default=False,
        validation_alias=AliasChoices("rule_out_single_bathroom", "ruleOutSingleBathroom"),
    )

    @field_validator("name", "search_url", "notify_target")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("value cannot be empty")
        return value

    @field_validator("rule_out_single_bathroom", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        # Only a literal true enables the detail-page check.
        return value is True


class AppConfig(BaseModel):
    """Global settings plus the ordered subscription list."""

    store_location: Path = Field(
        default=Path("listings.db"),
        validation_alias=AliasChoices("store_location", "storeLocation", "dbDsn"),
    )
    poll_interval_minutes: float = Field(
        default=10,
        validation_alias=AliasChoices(
            "poll_interval_minutes", "pollIntervalMinutes", "refreshIntervalMinutes"
        ),
    )
    navigation_timeout_seconds: float = Field(
        default=60,
        validation_alias=AliasChoices(
            "navigation_timeout_seconds", "navigationTimeoutSeconds", "navigationTimeout"
        ),
    )
    detail_timeout_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("detail_timeout_seconds", "detailTimeoutSeconds"),
    )
    headless: bool = True
    debug: bool = False
    config_watch_seconds: float = Field(
        default=5,
        validation_alias=AliasChoices("config_watch_seconds", "configWatchSeconds"),
    )
    selectors: SelectorConfig = Field(default_factory=SelectorConfig)
    subscriptions: list[Subscription] = Field(default_factory=list)

    @field_validator("store_location", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_timings(self) -> "AppConfig":
        if self.poll_interval_minutes <= 0:
            raise ValueError("poll_interval_minutes must be > 0")
        if self.navigation_timeout_seconds <= 0:
            raise ValueError("navigation_timeout_seconds must be > 0")
        if self.detail_timeout_seconds is not None and self.detail_timeout_seconds <= 0:
            raise ValueError("detail_timeout_seconds must be > 0")
        if self.config_watch_seconds <= 0:
            raise ValueError("config_watch_seconds must be > 0")
        names = [subscription.name for subscription in self.subscriptions]
        if len(names) != len(set(names)):
            raise ValueError("subscription names must be unique")
        return self

    @property
    def browser_headless(self) -> bool:
        """Debug mode always opens a visible browser window."""

        return self.headless and not self.debug

    @property
    def effective_detail_timeout(self) -> float:
        return self.detail_timeout_seconds or self.navigation_timeout_seconds

    def resolved_store_path(self, base_dir: Path) -> Path:
        """Return the store path, resolving relative locations against ``base_dir``."""

        if not self.store_location.is_absolute():
            return (base_dir / self.store_location).resolve()
        return self.store_location


__all__ = ["AppConfig", "SelectorConfig", "Subscription"]
