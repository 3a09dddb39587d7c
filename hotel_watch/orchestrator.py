"""Sweep orchestrator wiring together registry, fetching, extraction, detection and delivery."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock, Thread
from typing import Callable

from .config import MonitorSettings, SourceConfig
from .engine import (
    ChangeDetector,
    OfferExtractor,
    PageFetcher,
    SourceFailure,
    SourceRegistry,
    SweepResult,
)
from .errors import DeliveryError, FetchError, ParseError
from .logging_conf import configure_logging, source_logger
from .notify import Dispatcher, NotificationBatcher, SubscriberRegistry
from .scheduler import APSchedulerAdapter


@dataclass(slots=True)
class MonitorStatus:
    source_count: int
    observed_offer_count: int
    subscriber_count: int = 0
    sweep_running: bool = False
    schedule_times: list[str] = field(default_factory=list)
    last_sweep: SweepResult | None = None


class Monitor:
    """Run sweeps over every registered source, one at a time and never two at once."""

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: PageFetcher,
        extractor: OfferExtractor,
        detector: ChangeDetector,
        batcher: NotificationBatcher,
        dispatcher: Dispatcher | None = None,
        settings: MonitorSettings | None = None,
        scheduler: APSchedulerAdapter | None = None,
        subscribers: SubscriberRegistry | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.registry = registry
        self.fetcher = fetcher
        self.extractor = extractor
        self.detector = detector
        self.batcher = batcher
        self.dispatcher = dispatcher
        self.settings = settings or MonitorSettings()
        self.scheduler = scheduler
        self.subscribers = subscribers
        self._sleep = sleep
        self._sweep_lock = Lock()
        self.last_result: SweepResult | None = None
        self.logger = configure_logging().bind(component="monitor")

    # ------------------------------------------------------------------
    def register_schedules(self) -> None:
        if self.scheduler is None:
            raise RuntimeError("Monitor was created without a scheduler")
        self.scheduler.schedule_daily(self.run_sweep)
        self.scheduler.schedule_startup(self.run_sweep)
        self.scheduler.start()

    def trigger_sweep_now(self) -> bool:
        """Start a sweep in the background; False when one is already running."""

        if self.sweep_running:
            self.logger.info("sweep_trigger_coalesced")
            return False
        if self.scheduler is not None and self.scheduler.started:
            self.scheduler.trigger_now(self.run_sweep)
        else:
            Thread(target=self.run_sweep, name="hotel-watch-sweep", daemon=True).start()
        return True

    @property
    def sweep_running(self) -> bool:
        return self._sweep_lock.locked()

    def status(self) -> MonitorStatus:
        return MonitorStatus(
            source_count=len(self.registry),
            observed_offer_count=self.detector.observed_count,
            subscriber_count=len(self.subscribers) if self.subscribers is not None else 0,
            sweep_running=self.sweep_running,
            schedule_times=list(self.scheduler.schedule.times) if self.scheduler else [],
            last_sweep=self.last_result,
        )

    # ------------------------------------------------------------------
    def run_sweep(self, notify: bool = True) -> SweepResult | None:
        """Check every source once; returns None if another sweep was in flight."""

        if not self._sweep_lock.acquire(blocking=False):
            self.logger.info("sweep_coalesced")
            return None
        try:
            return self._sweep(notify)
        finally:
            self._sweep_lock.release()

    def _sweep(self, notify: bool) -> SweepResult:
        result = SweepResult()
        sources = self.registry.list()
        self.logger.info("sweep_started", sources=len(sources))
        for index, source in enumerate(sources):
            if index:
                self._sleep(self.settings.inter_source_delay)
            try:
                self._check_source(source, result)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("source_unexpected_error", source=source.name, error=str(exc))
                result.failures.append(SourceFailure(source.name, exc))
        result.finished_at = datetime.now(timezone.utc)

        if result.changed_offers and notify:
            self._dispatch(result)
        self.logger.info(
            "sweep_completed",
            checked=result.sources_checked,
            changed=len(result.changed_offers),
            failures=result.failure_count,
            failed_sources=result.failed_sources(),
            notified=result.notified,
        )
        self.last_result = result
        return result

    def _check_source(self, source: SourceConfig, result: SweepResult) -> None:
        log = source_logger(source.name)
        log.info("source_check_started", url=source.location)
        try:
            response = self.fetcher.fetch(source.location, self.settings.fetch_timeout)
        except FetchError as exc:
            log.warning("fetch_failed", url=source.location, error=str(exc))
            result.failures.append(SourceFailure(source.name, exc))
            return

        result.sources_checked += 1
        try:
            offers = self.extractor.extract(response.text, source)
        except ParseError as exc:
            log.warning("parse_failed", error=str(exc))
            result.failures.append(SourceFailure(source.name, exc))
            return

        changed = 0
        seen = set()
        for offer in offers:
            # one classify call per fingerprint per sweep
            if offer.fingerprint in seen:
                continue
            seen.add(offer.fingerprint)
            outcome = self.detector.classify(offer)
            if outcome.notifiable:
                result.changed_offers.append(offer)
                changed += 1
        log.info("source_checked", offers=len(offers), changed=changed)

    def _dispatch(self, result: SweepResult) -> None:
        message = self.batcher.format(result.changed_offers, completed_at=result.finished_at)
        if message is None:
            return
        if self.dispatcher is None:
            self.logger.warning("notification_skipped", reason="no_dispatcher")
            return
        try:
            delivered = self.dispatcher.deliver(message)
        except DeliveryError as exc:
            # Offers stay marked as seen; delivery is at-most-once.
            self.logger.error("notification_failed", error=str(exc))
            return
        result.notified = bool(delivered)
        self.logger.info(
            "notification_dispatched", offers=len(result.changed_offers), recipients=delivered
        )


__all__ = ["Monitor", "MonitorStatus"]
