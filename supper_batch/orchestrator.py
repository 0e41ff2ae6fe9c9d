"""
RolloverOrchestrator -- DI container for the rollover system.

Contract:
    Composes the engine, session factory, document store, run history,
    drivers and scheduler from a ``RolloverConfig``.  Single place where
    rollover dependencies are wired; every component gets the same Clock.

Non-goals:
    - Does NOT start the scheduler automatically -- caller decides.
"""

from __future__ import annotations

from typing import Callable

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from supper_kernel.clock import Clock, SystemClock
from supper_kernel.db.engine import (
    create_session_factory,
    create_store_engine,
    create_tables,
)
from supper_kernel.logging_config import get_logger
from supper_kernel.store.base import DocumentStore
from supper_kernel.store.sql_store import SqlDocumentStore

import supper_batch.models  # noqa: F401  (registers rollover_runs)
from supper_batch.domain.schedule import CronExpression
from supper_batch.services.driver import RolloverDriver
from supper_batch.services.history import RunHistory
from supper_batch.services.scheduler import RolloverScheduler, ScheduleEntry
from supper_config.schema import RolloverConfig
from supper_notify.dispatcher import NotificationDispatcher
from supper_notify.sender import FcmHttpSender

logger = get_logger("batch.orchestrator")


class RolloverOrchestrator:

    def __init__(
        self,
        config: RolloverConfig,
        store: DocumentStore,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        engine: Engine | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._engine = engine
        self._history = RunHistory(session_factory)

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: RolloverConfig,
        clock: Clock | None = None,
    ) -> RolloverOrchestrator:
        """Build the engine, session factory and SQL store described by ``config``."""
        effective_clock = clock or SystemClock()
        engine = create_store_engine(config.store.database_url)
        session_factory = create_session_factory(engine)
        store = SqlDocumentStore(
            session_factory,
            clock=effective_clock,
            max_operations_per_commit=config.store.max_operations_per_commit,
        )
        return cls(
            config=config,
            store=store,
            session_factory=session_factory,
            clock=effective_clock,
            engine=engine,
        )

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    def init_db(self) -> None:
        if self._engine is None:
            raise RuntimeError("init_db() needs an orchestrator built by from_config()")
        create_tables(self._engine)

    def create_driver(self, plan_name: str) -> RolloverDriver:
        """Driver for one configured plan.

        Raises:
            KeyError: if ``plan_name`` is not configured.
        """
        plan_config = self._config.plan(plan_name)
        return RolloverDriver(
            store=self._store,
            plan=plan_config.plan,
            clock=self._clock,
            operation_limit=self._config.batching.operation_limit,
            safety_margin=self._config.batching.safety_margin,
        )

    def create_scheduler(self) -> RolloverScheduler:
        """Scheduler with one entry per enabled plan that has a schedule."""
        entries = []
        for plan_config in self._config.plans:
            if not plan_config.enabled or plan_config.schedule is None:
                logger.info(
                    "plan_not_scheduled",
                    extra={"plan": plan_config.plan.name, "enabled": plan_config.enabled},
                )
                continue
            schedule = plan_config.schedule
            entries.append(
                ScheduleEntry(
                    driver=self.create_driver(plan_config.plan.name),
                    cron=CronExpression.parse(schedule.cron),
                    retry_count=schedule.retry_count,
                    backoff_seconds=schedule.backoff_seconds,
                )
            )
        return RolloverScheduler(
            entries,
            clock=self._clock,
            history=self._history,
            tick_interval_seconds=self._config.scheduler_tick_seconds,
        )

    def create_notification_dispatcher(
        self,
        access_token: Callable[[], str],
        http_client: httpx.Client | None = None,
    ) -> NotificationDispatcher:
        """Dispatcher sending through FCM with the configured project.

        Raises:
            ValueError: if ``notifications.fcm_project_id`` is not configured.
        """
        notifications = self._config.notifications
        if not notifications.fcm_project_id:
            raise ValueError("notifications.fcm_project_id is not configured")
        sender = FcmHttpSender(
            notifications.fcm_project_id,
            access_token,
            http_client=http_client,
            timeout_seconds=notifications.timeout_seconds,
        )
        return NotificationDispatcher(self._store, sender)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> RolloverConfig:
        return self._config

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def history(self) -> RunHistory:
        return self._history

    @property
    def clock(self) -> Clock:
        return self._clock
