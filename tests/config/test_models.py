from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rental_crawler.config import AppConfig, SelectorConfig, Subscription

from fakes import SEARCH_URL, WEBHOOK_URL, subscription_payload


def test_defaults() -> None:
    config = AppConfig()
    assert config.store_location == Path("listings.db")
    assert config.poll_interval_minutes == 10
    assert config.navigation_timeout_seconds == 60
    assert config.effective_detail_timeout == 60
    assert config.browser_headless is True
    assert config.subscriptions == []
    assert config.selectors.single_bathroom_marker == "1衛"


def test_legacy_camel_case_keys_are_accepted() -> None:
    config = AppConfig.model_validate(
        {
            "dbDsn": "/data/rent.db",
            "refreshIntervalMinutes": 3,
            "navigationTimeout": 45,
            "subscriptions": [
                {
                    "name": " Xinyi ",
                    "searchUrl": SEARCH_URL,
                    "discordWebhookUrl": WEBHOOK_URL,
                    "ruleOutSingleBathroom": True,
                }
            ],
        }
    )
    assert config.store_location == Path("/data/rent.db")
    assert config.poll_interval_minutes == 3
    assert config.navigation_timeout_seconds == 45
    [subscription] = config.subscriptions
    assert subscription.name == "Xinyi"
    assert subscription.notify_target == WEBHOOK_URL
    assert subscription.rule_out_single_bathroom is True


@pytest.mark.parametrize("flag", ["true", 1, "yes", None])
def test_only_literal_true_enables_bathroom_check(flag) -> None:  # noqa: ANN001
    subscription = Subscription.model_validate(
        subscription_payload(rule_out_single_bathroom=flag)
    )
    assert subscription.rule_out_single_bathroom is False


@pytest.mark.parametrize("missing", ["name", "search_url", "notify_target"])
def test_subscription_requires_core_fields(missing: str) -> None:
    payload = subscription_payload()
    payload.pop(missing)
    with pytest.raises(ValidationError):
        Subscription.model_validate(payload)


def test_subscription_rejects_blank_values() -> None:
    with pytest.raises(ValidationError):
        Subscription.model_validate(subscription_payload(search_url="   "))


def test_subscription_names_must_be_unique() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate(
            {"subscriptions": [subscription_payload("A"), subscription_payload("A")]}
        )


@pytest.mark.parametrize(
    "settings",
    [
        {"poll_interval_minutes": 0},
        {"navigation_timeout_seconds": -1},
        {"detail_timeout_seconds": 0},
        {"config_watch_seconds": 0},
    ],
)
def test_timings_must_be_positive(settings: dict) -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate(settings)


def test_debug_forces_visible_browser_and_detail_timeout_override() -> None:
    config = AppConfig(debug=True, detail_timeout_seconds=15)
    assert config.browser_headless is False
    assert config.effective_detail_timeout == 15


def test_resolved_store_path(tmp_path: Path) -> None:
    assert AppConfig(store_location="data/x.db").resolved_store_path(tmp_path) == (
        tmp_path / "data" / "x.db"
    ).resolve()
    absolute = tmp_path / "abs.db"
    assert AppConfig(store_location=absolute).resolved_store_path(Path("/elsewhere")) == absolute


def test_selectors_cannot_be_blank() -> None:
    with pytest.raises(ValidationError):
        SelectorConfig(item="")
    assert SelectorConfig(item="li.card").item == "li.card"
