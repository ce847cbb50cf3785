"""Webhook notifier posting new listing links."""

from __future__ import annotations

import json
from typing import Sequence

import httpx
import structlog


def build_content(subscription_name: str, links: Sequence[str]) -> str:
    """Subscription name header, then one link per paragraph."""

    return "\n\n".join([subscription_name, *links])


class WebhookNotifier:
    """POST ``{"content": ...}`` to a Discord-style webhook, fire and forget."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 15,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.logger = logger or structlog.get_logger("rental_crawler.notifier")

    def notify(
        self, subscription_name: str, target: str, links: Sequence[str]
    ) -> httpx.Response | None:
        if not links:
            return None
        self.logger.info(
            "sending_notification", subscription=subscription_name, count=len(links)
        )
        # An encoding failure is a bug and propagates.
        body = json.dumps({"content": build_content(subscription_name, links)}, ensure_ascii=False)
        try:
            response = self._client.post(
                target,
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.logger.warning(
                "notification_failed", subscription=subscription_name, error=str(exc)
            )
            return None
        return response

    def close(self) -> None:
        self._client.close()


__all__ = ["WebhookNotifier", "build_content"]
