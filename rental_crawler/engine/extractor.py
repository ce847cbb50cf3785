"""Turn a rendered search-results page into candidate listings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union
from urllib.parse import urljoin

import structlog

from ..config import SelectorConfig
from ..errors import DeadlineExceeded, RenderError
from ..records import Listing
from .deadline import Deadline
from .renderer import RenderedPage, Renderer

T = TypeVar("T")

# Positions inside the item style list; the markup carries no labels.
STYLE_POSITIONS = ("property_type", "layout", "size", "floor")


@dataclass(frozen=True)
class Continue(Generic[T]):
    """The query finished; ``value`` is None after a tolerated failure."""

    value: T | None


@dataclass(frozen=True)
class AbortRound:
    """The deadline expired; stop enumerating this page."""

    reason: str


FieldResult = Union[Continue[T], AbortRound]


@dataclass(frozen=True)
class DetailCheck:
    layout: str | None = None
    discard: bool = False


class ListingExtractor:
    """Enumerate listing items on a search page and read their fields."""

    def __init__(
        self,
        renderer: Renderer,
        selectors: SelectorConfig | None = None,
        detail_timeout: float | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.renderer = renderer
        self.selectors = selectors or SelectorConfig()
        self.detail_timeout = detail_timeout
        self.logger = logger or structlog.get_logger("rental_crawler.extractor")

    def extract(
        self,
        search_url: str,
        rule_out_single_bathroom: bool,
        timeout: float,
        deadline: Deadline | None = None,
    ) -> list[Listing]:
        """Return candidates in document order; an empty list means no data this round."""

        deadline = deadline or Deadline.after(timeout)
        sel = self.selectors
        page: RenderedPage | None = None
        try:
            try:
                page = self.renderer.new_page()
                page.navigate(search_url, deadline)
                page.wait_visible(sel.list_container, deadline)
                items = page.query_all(sel.item, deadline)
            except DeadlineExceeded as exc:
                self.logger.warning("search_page_timeout", url=search_url, error=str(exc))
                return []
            except RenderError as exc:
                self.logger.warning("search_page_failed", url=search_url, error=str(exc))
                return []

            self.logger.info("listing_items_found", url=search_url, count=len(items))
            candidates: list[Listing] = []
            for index, item in enumerate(items):
                outcome = self._extract_item(
                    page, item, search_url, deadline, rule_out_single_bathroom
                )
                if isinstance(outcome, AbortRound):
                    self.logger.warning(
                        "extraction_aborted",
                        url=search_url,
                        index=index,
                        remaining=len(items) - index,
                        reason=outcome.reason,
                    )
                    break
                if outcome.value is not None:
                    candidates.append(outcome.value)
            return candidates
        finally:
            if page is not None:
                page.close()

    # ------------------------------------------------------------------
    def _query(self, label: str, operation: Callable[[], T]) -> FieldResult[T]:
        """Single error-handling site for every per-field DOM query."""

        try:
            return Continue(operation())
        except DeadlineExceeded as exc:
            return AbortRound(f"{label}: {exc}")
        except RenderError as exc:
            self.logger.info("field_query_failed", field=label, error=str(exc))
            return Continue(None)

    def _extract_item(
        self,
        page: RenderedPage,
        item: Any,
        search_url: str,
        deadline: Deadline,
        rule_out_single_bathroom: bool,
    ) -> FieldResult[Listing]:
        sel = self.selectors
        listing = Listing()

        result = self._query(
            "link", lambda: page.query_attribute(sel.link, "href", deadline, scope=item)
        )
        if isinstance(result, AbortRound):
            return result
        if result.value:
            listing.link = urljoin(search_url, result.value.strip())

        detail_layout: str | None = None
        if rule_out_single_bathroom:
            if listing.link:
                check = self._check_detail(listing.link, deadline)
                if check.discard:
                    return Continue(None)
                detail_layout = check.layout
            else:
                self.logger.info("detail_check_skipped", reason="missing_link")

        result = self._query(
            "external_id", lambda: page.node_attribute(item, sel.item_id_attribute, deadline)
        )
        if isinstance(result, AbortRound):
            return result
        listing.external_id = (result.value or "").strip()

        result = self._query("title", lambda: page.query_text(sel.title, deadline, scope=item))
        if isinstance(result, AbortRound):
            return result
        listing.title = result.value or ""

        styles = self._query(
            "item_styles", lambda: page.query_all(sel.item_styles, deadline, scope=item)
        )
        if isinstance(styles, AbortRound):
            return styles
        nodes = styles.value or []
        for position, name in enumerate(STYLE_POSITIONS):
            if position >= len(nodes):
                self.logger.info(
                    "field_query_failed", field=name, error=f"style list has {len(nodes)} items"
                )
                continue
            node = nodes[position]
            result = self._query(name, lambda: page.node_text(node, deadline))
            if isinstance(result, AbortRound):
                return result
            setattr(listing, name, result.value or "")
        if detail_layout:
            listing.layout = detail_layout

        for name, selector in (
            ("area", sel.area),
            ("address", sel.address),
            ("price", sel.price),
        ):
            result = self._query(name, lambda: page.query_text(selector, deadline, scope=item))
            if isinstance(result, AbortRound):
                return result
            setattr(listing, name, result.value or "")

        return Continue(listing)

    def _check_detail(self, link: str, deadline: Deadline) -> DetailCheck:
        """Read the layout from the detail page under a nested deadline."""

        sel = self.selectors
        inner = deadline.child(self.detail_timeout or deadline.remaining())
        page: RenderedPage | None = None
        try:
            page = self.renderer.new_page()
            page.navigate(link, inner)
            page.wait_visible(sel.detail_container, inner)
            layout = page.query_text(sel.detail_layout, inner)
        except DeadlineExceeded as exc:
            self.logger.info("detail_page_timeout", url=link, error=str(exc))
            return DetailCheck(discard=True)
        except RenderError as exc:
            self.logger.info("detail_page_failed", url=link, error=str(exc))
            return DetailCheck()
        finally:
            if page is not None:
                page.close()
        if sel.single_bathroom_marker in layout:
            self.logger.info("single_bathroom_excluded", url=link, layout=layout)
            return DetailCheck(discard=True)
        return DetailCheck(layout=layout or None)


__all__ = ["AbortRound", "Continue", "FieldResult", "ListingExtractor", "STYLE_POSITIONS"]
