from __future__ import annotations

import json

import httpx

from rental_crawler.engine import WebhookNotifier, build_content

from fakes import WEBHOOK_URL


def make_notifier(handler) -> WebhookNotifier:  # noqa: ANN001
    return WebhookNotifier(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_build_content_separates_paragraphs() -> None:
    assert build_content("Daan", ["https://a", "https://b"]) == "Daan\n\nhttps://a\n\nhttps://b"


def test_notify_posts_json_content() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(204)

    notifier = make_notifier(handler)
    response = notifier.notify("大安 兩房", WEBHOOK_URL, ["https://a/1", "https://a/2"])

    assert response is not None and response.status_code == 204
    [request] = captured
    assert request.method == "POST"
    assert str(request.url) == WEBHOOK_URL
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content.decode("utf-8")) == {
        "content": "大安 兩房\n\nhttps://a/1\n\nhttps://a/2"
    }
    notifier.close()


def test_notify_skips_empty_link_list() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    assert make_notifier(handler).notify("Daan", WEBHOOK_URL, []) is None
    assert calls == []


def test_notify_swallows_http_errors() -> None:
    def rejecting(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert make_notifier(rejecting).notify("Daan", WEBHOOK_URL, ["https://a/1"]) is None
    assert make_notifier(unreachable).notify("Daan", WEBHOOK_URL, ["https://a/1"]) is None


def test_notify_swallows_rejected_target_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    notifier = make_notifier(handler)

    assert notifier.notify("Daan", WEBHOOK_URL, ["https://a/1", "https://a/2"]) is None
