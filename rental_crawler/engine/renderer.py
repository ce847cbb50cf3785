"""Rendering capability backed by a Playwright-driven Chromium."""

from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

from ..errors import DeadlineExceeded, ElementNotFound, RenderError
from .deadline import Deadline

T = TypeVar("T")


class RenderedPage(Protocol):
    """DOM access used by the extractor; every call is bounded by ``deadline``."""

    def navigate(self, url: str, deadline: Deadline) -> None: ...

    def wait_visible(self, selector: str, deadline: Deadline) -> None: ...

    def query_all(self, selector: str, deadline: Deadline, scope: Any = None) -> list[Any]: ...

    def query_text(self, selector: str, deadline: Deadline, scope: Any = None) -> str: ...

    def query_attribute(
        self, selector: str, attribute: str, deadline: Deadline, scope: Any = None
    ) -> str: ...

    def node_text(self, node: Any, deadline: Deadline) -> str: ...

    def node_attribute(self, node: Any, attribute: str, deadline: Deadline) -> str: ...

    def close(self) -> None: ...


class Renderer(Protocol):
    def new_page(self) -> RenderedPage: ...


class PlaywrightPage:
    """Wrap a Playwright page, mapping its errors onto the crawler taxonomy.

    ``navigate`` and ``wait_visible`` pass the remaining time to Playwright.
    Element-handle reads (``query_selector``, ``text_content``, ``get_attribute``)
    accept no timeout: the deadline is checked before and after each one, so a
    read that hangs is only noticed once it returns. These reads run against an
    already rendered DOM.
    """

    def __init__(self, page: Any, context: Any = None) -> None:
        self._page = page
        self._context = context

    def _run(self, deadline: Deadline, operation: Callable[[float], T]) -> T:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        timeout_ms = deadline.timeout_ms()
        try:
            result = operation(timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise DeadlineExceeded(str(exc)) from exc
        except PlaywrightError as exc:
            raise RenderError(str(exc)) from exc
        # ElementHandle calls carry no timeout of their own.
        deadline.check()
        return result

    def _first(self, selector: str, scope: Any) -> Any:
        root = scope if scope is not None else self._page
        node = root.query_selector(selector)
        if node is None:
            raise ElementNotFound(f"No element matches '{selector}'")
        return node

    def navigate(self, url: str, deadline: Deadline) -> None:
        self._run(
            deadline,
            lambda timeout: self._page.goto(url, wait_until="domcontentloaded", timeout=timeout),
        )

    def wait_visible(self, selector: str, deadline: Deadline) -> None:
        self._run(
            deadline,
            lambda timeout: self._page.wait_for_selector(selector, state="visible", timeout=timeout),
        )

    def query_all(self, selector: str, deadline: Deadline, scope: Any = None) -> list[Any]:
        root = scope if scope is not None else self._page
        return self._run(deadline, lambda _timeout: list(root.query_selector_all(selector)))

    def query_text(self, selector: str, deadline: Deadline, scope: Any = None) -> str:
        return self._run(
            deadline, lambda _timeout: (self._first(selector, scope).text_content() or "").strip()
        )

    def query_attribute(
        self, selector: str, attribute: str, deadline: Deadline, scope: Any = None
    ) -> str:
        def _read(_timeout: float) -> str:
            value = self._first(selector, scope).get_attribute(attribute)
            if value is None:
                raise ElementNotFound(f"'{selector}' has no attribute '{attribute}'")
            return value

        return self._run(deadline, _read)

    def node_text(self, node: Any, deadline: Deadline) -> str:
        return self._run(deadline, lambda _timeout: (node.text_content() or "").strip())

    def node_attribute(self, node: Any, attribute: str, deadline: Deadline) -> str:
        def _read(_timeout: float) -> str:
            value = node.get_attribute(attribute)
            if value is None:
                raise ElementNotFound(f"Node has no attribute '{attribute}'")
            return value

        return self._run(deadline, _read)

    def close(self) -> None:
        from playwright.sync_api import Error as PlaywrightError

        for target in (self._page, self._context):
            if target is None:
                continue
            try:
                target.close()
            except PlaywrightError:
                # Already closed together with the browser.
                continue


class PlaywrightRenderer:
    """Own a Chromium instance for one round; every ``new_page`` is a fresh context."""

    def __init__(self, headless: bool = True, locale: str = "zh-TW") -> None:
        self.headless = headless
        self.locale = locale
        self._playwright = None
        self._browser = None

    def __enter__(self) -> "PlaywrightRenderer":
        self.start()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def start(self) -> None:
        if self._playwright is not None:
            return
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless)
        except PlaywrightError as exc:
            self._playwright.stop()
            self._playwright = None
            raise RenderError(f"Failed to launch browser: {exc}") from exc

    def new_page(self) -> PlaywrightPage:
        from playwright.sync_api import Error as PlaywrightError

        self.start()
        context = None
        try:
            context = self._browser.new_context(locale=self.locale)
            return PlaywrightPage(context.new_page(), context)
        except PlaywrightError as exc:
            if context is not None:
                PlaywrightPage(None, context).close()
            raise RenderError(f"Failed to open page: {exc}") from exc

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None


__all__ = ["PlaywrightPage", "PlaywrightRenderer", "RenderedPage", "Renderer"]
