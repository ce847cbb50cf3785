"""Round orchestration: extract, deduplicate and notify per subscription."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, ContextManager

from .config import AppConfig, ConfigRepository, Subscription
from .engine import (
    DeduplicationEngine,
    Inserted,
    ListingExtractor,
    PlaywrightRenderer,
    Rejected,
    Renderer,
    Replaced,
    WebhookNotifier,
)
from .errors import RenderError, StoreError
from .infra import ListingStore, SQLiteManager
from .logging_conf import configure_logging, subscription_logger
from .scheduler import APSchedulerAdapter

RendererFactory = Callable[..., ContextManager[Renderer]]


@dataclass(slots=True)
class SubscriptionSummary:
    """Counters for one subscription within one round."""

    name: str
    extracted: int = 0
    inserted: int = 0
    replaced: int = 0
    rejected: int = 0
    notified: int = 0
    error: str | None = None


class Orchestrator:
    """Central coordinator running rounds over the configured subscriptions."""

    def __init__(
        self,
        repository: ConfigRepository,
        storage: SQLiteManager | None = None,
        renderer_factory: RendererFactory | None = None,
        notifier: WebhookNotifier | None = None,
        scheduler: APSchedulerAdapter | None = None,
    ) -> None:
        self.repository = repository
        self.storage = storage or SQLiteManager()
        self.renderer_factory = renderer_factory or PlaywrightRenderer
        self.notifier = notifier or WebhookNotifier()
        self.scheduler = scheduler
        self.logger = configure_logging().bind(component="orchestrator")
        self.store: ListingStore | None = None

    # ------------------------------------------------------------------
    def open_store(self, config: AppConfig | None = None) -> ListingStore:
        """Open the store named by ``config``; raises ``StoreError`` when it cannot."""

        path = self.repository.store_path(config)
        self.store = ListingStore(self.storage, path)
        self.logger.info("store_opened", path=str(path))
        return self.store

    def _sync_store(self, config: AppConfig) -> None:
        path = self.repository.store_path(config)
        if self.store is not None and self.store.path == path:
            return
        previous = self.store
        try:
            self.open_store(config)
        except StoreError as exc:
            if previous is None:
                raise
            self.logger.error("store_switch_failed", path=str(path), error=str(exc))
            return
        if previous is not None:
            previous.close()
            self.logger.info("store_switched", previous=str(previous.path), path=str(path))

    # ------------------------------------------------------------------
    def run_subscription(
        self, subscription: Subscription, config: AppConfig, renderer: Renderer
    ) -> SubscriptionSummary:
        log = subscription_logger(subscription.name, verbose=config.debug)
        summary = SubscriptionSummary(name=subscription.name)
        log.info("subscription_started", url=subscription.search_url)

        extractor = ListingExtractor(
            renderer,
            config.selectors,
            detail_timeout=config.effective_detail_timeout,
            logger=log,
        )
        candidates = extractor.extract(
            subscription.search_url,
            subscription.rule_out_single_bathroom,
            config.navigation_timeout_seconds,
        )
        summary.extracted = len(candidates)

        engine = DeduplicationEngine(self.store, logger=log)
        decisions, new_links = engine.admit_all(candidates)
        for decision in decisions:
            if isinstance(decision, Inserted):
                summary.inserted += 1
            elif isinstance(decision, Replaced):
                summary.replaced += 1
            elif isinstance(decision, Rejected):
                summary.rejected += 1

        if new_links:
            self.notifier.notify(subscription.name, subscription.notify_target, new_links)
            summary.notified = len(new_links)
        log.info(
            "subscription_finished",
            extracted=summary.extracted,
            inserted=summary.inserted,
            replaced=summary.replaced,
            rejected=summary.rejected,
        )
        return summary

    def run_round(self) -> list[SubscriptionSummary]:
        """Process every subscription of the current snapshot, in listed order."""

        config = self.repository.snapshot()
        self._sync_store(config)
        if not config.subscriptions:
            self.logger.warning("no_subscriptions_configured")
            return []

        summaries: list[SubscriptionSummary] = []
        try:
            with self.renderer_factory(headless=config.browser_headless) as renderer:
                for subscription in config.subscriptions:
                    try:
                        summaries.append(self.run_subscription(subscription, config, renderer))
                    except Exception as exc:  # noqa: BLE001
                        self.logger.exception(
                            "subscription_failed", subscription=subscription.name, error=str(exc)
                        )
                        summaries.append(SubscriptionSummary(name=subscription.name, error=str(exc)))
        except RenderError as exc:
            self.logger.error("renderer_unavailable", error=str(exc))
        return summaries

    # ------------------------------------------------------------------
    def run_forever(self) -> None:
        """Load config and store (fatal on failure), then chain rounds indefinitely."""

        config = self.repository.load()
        self.open_store(config)
        if self.scheduler is None:
            self.scheduler = APSchedulerAdapter()
        self.scheduler.watch_config(self.repository.refresh, config.config_watch_seconds)
        self.scheduler.schedule_round(self._round_job)
        self.scheduler.start()

    def _round_job(self) -> None:
        try:
            self.run_round()
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("round_failed", error=str(exc))
        finally:
            interval = self.repository.snapshot().poll_interval_minutes
            self.logger.info("round_finished", sleep_minutes=interval)
            self.scheduler.schedule_round(self._round_job, delay_minutes=interval)

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown()
        self.notifier.close()
        self.storage.close_all()
        self.store = None


__all__ = ["Orchestrator", "SubscriptionSummary"]
