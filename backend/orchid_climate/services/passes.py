"""Pass runner: the entry points an external scheduler invokes.

Every pipeline pass is registered by name and run through ``PassRunner``,
which keeps a pass from overlapping with itself. If cron fires
``zone-poll`` while the previous one is still waiting on a slow vendor,
the second invocation is skipped and reported as such rather than doubling
up on API calls.

Passes:
  zone-poll       poll every zone, prune old readings, then chain alert-check
  habitat-poll    native-habitat weather followed by compaction
  compact         compaction only
  alert-check     climate/watering alerts with push fan-out
  seasonal-check  rest/bloom transition alerts
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

import httpx
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import settings
from ..models.database import SessionFactory, SessionLocal
from ..models.pass_lease import PassLeaseModel
from .alerts import check_and_send_alerts
from .compactor import compact_habitat_data
from .habitat_poller import poll_habitat_weather
from .push import PushSink
from .seasonal_alerts import check_seasonal_alerts
from .zone_poller import ZonePoller

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class PassContext:
    """Collaborators handed to every pass."""
    session_factory: SessionFactory = SessionLocal
    client: Optional[httpx.AsyncClient] = None
    push_sink: Optional[PushSink] = None
    runner: Optional["PassRunner"] = None


PassFunc = Callable[[PassContext], Awaitable[dict]]


async def _zone_poll(ctx: PassContext) -> dict:
    result = await ZonePoller(ctx.session_factory, ctx.client).run()
    if settings.chain_alert_check and ctx.runner is not None:
        result["alert_check"] = await ctx.runner.run("alert-check")
    return result


async def _habitat_poll(ctx: PassContext) -> dict:
    return await poll_habitat_weather(ctx.session_factory, ctx.client)


async def _compact(ctx: PassContext) -> dict:
    return compact_habitat_data(ctx.session_factory)


async def _alert_check(ctx: PassContext) -> dict:
    return await check_and_send_alerts(ctx.session_factory, ctx.push_sink)


async def _seasonal_check(ctx: PassContext) -> dict:
    return check_seasonal_alerts(ctx.session_factory)


PASSES: dict[str, PassFunc] = {
    "zone-poll": _zone_poll,
    "habitat-poll": _habitat_poll,
    "compact": _compact,
    "alert-check": _alert_check,
    "seasonal-check": _seasonal_check,
}


class UnknownPassError(KeyError):
    pass


# --- Leases ---
#
# The in-memory guard only covers one process. Cron starts a new process per
# invocation, so each pass also takes a lease row in the shared database.

def acquire_lease(
    session_factory: SessionFactory,
    name: str,
    holder: str,
    ttl: timedelta,
    now: Optional[datetime] = None,
) -> bool:
    """Claim the lease for ``name``. False if another holder's lease is live."""
    now = now or datetime.now(timezone.utc)
    db = session_factory()
    try:
        try:
            db.add(PassLeaseModel(name=name, holder=holder, acquired_at=now, expires_at=now + ttl))
            db.commit()
            return True
        except IntegrityError:
            db.rollback()

        taken = db.execute(
            update(PassLeaseModel)
            .where(PassLeaseModel.name == name)
            .where(PassLeaseModel.expires_at <= now)
            .values(holder=holder, acquired_at=now, expires_at=now + ttl)
        ).rowcount
        db.commit()
        if taken:
            logger.warning("Pass %s: took over an expired lease", name)
        return taken == 1
    finally:
        db.close()


def release_lease(session_factory: SessionFactory, name: str, holder: str) -> None:
    db = session_factory()
    try:
        db.execute(
            delete(PassLeaseModel)
            .where(PassLeaseModel.name == name)
            .where(PassLeaseModel.holder == holder)
        )
        db.commit()
    finally:
        db.close()


class PassRunner:
    """Runs registered passes, at most one instance of each at a time.

    Overlap is checked in memory first, then against the lease table so
    runners in other processes sharing the database are seen too.
    """

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        client: Optional[httpx.AsyncClient] = None,
        push_sink: Optional[PushSink] = None,
        passes: Optional[dict[str, PassFunc]] = None,
    ):
        self.passes = passes if passes is not None else PASSES
        self._ctx = PassContext(session_factory, client, push_sink, runner=self)
        self._running: set[str] = set()

    def is_running(self, name: str) -> bool:
        return name in self._running

    async def run(self, name: str) -> dict:
        """Run one pass and return a summary.

        The summary always carries ``pass`` and ``status``; a finished pass
        adds its own ``result``, a failed one its ``error``.

        Raises:
            UnknownPassError: if no pass is registered under ``name``.
        """
        func = self.passes.get(name)
        if func is None:
            raise UnknownPassError(name)

        if name in self._running:
            logger.warning("Pass %s already running, skipping", name)
            return {"pass": name, "status": STATUS_SKIPPED}

        session_factory = self._ctx.session_factory
        holder = uuid.uuid4().hex
        started = datetime.now(timezone.utc)
        try:
            acquired = acquire_lease(
                session_factory, name, holder,
                timedelta(minutes=settings.pass_lease_minutes), started,
            )
        except SQLAlchemyError as exc:
            logger.error("Pass %s: failed to acquire lease: %s", name, exc)
            return {
                "pass": name,
                "status": STATUS_FAILED,
                "started_at": started.isoformat(),
                "duration_sec": 0.0,
                "error": str(exc),
            }
        if not acquired:
            logger.warning("Pass %s already running in another process, skipping", name)
            return {"pass": name, "status": STATUS_SKIPPED}

        self._running.add(name)
        t0 = time.monotonic()
        logger.info("Pass %s started", name)
        try:
            result = await func(self._ctx)
        except Exception as exc:
            logger.error("Pass %s failed: %s", name, exc, exc_info=True)
            return {
                "pass": name,
                "status": STATUS_FAILED,
                "started_at": started.isoformat(),
                "duration_sec": round(time.monotonic() - t0, 3),
                "error": str(exc),
            }
        finally:
            self._running.discard(name)
            try:
                release_lease(session_factory, name, holder)
            except SQLAlchemyError as exc:
                logger.warning("Pass %s: failed to release lease, it expires on its own: %s",
                               name, exc)

        duration = round(time.monotonic() - t0, 3)
        logger.info("Pass %s finished in %.1fs", name, duration)
        return {
            "pass": name,
            "status": STATUS_OK,
            "started_at": started.isoformat(),
            "duration_sec": duration,
            "result": result,
        }


_runner: Optional[PassRunner] = None


def get_runner() -> PassRunner:
    """Process-wide runner shared by the API and the CLI."""
    global _runner
    if _runner is None:
        _runner = PassRunner()
    return _runner


async def run_pass(name: str) -> dict:
    return await get_runner().run(name)
