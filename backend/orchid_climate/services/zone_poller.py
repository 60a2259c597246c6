"""Zone climate poller.

Fetches one reading per configured growing zone and stores it as a
ClimateReading, then prunes readings past the retention window.

Two phases per pass:
  Phase A: device-linked zones, grouped by hardware device so each device
           costs one API round trip no matter how many zones share it.
  Phase B: legacy zones carrying their own data_source_type/config.

Each zone is handled on its own: a bad config or failed fetch is logged
and the loop moves on. There are no retries; the next pass tries again.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..errors import PipelineError
from ..models.climate_reading import ClimateReadingModel
from ..models.collection import GrowingZoneModel, HardwareDeviceModel
from ..models.database import SessionFactory, SessionLocal
from ..sources.base import RawReading, open_client
from ..sources.registry import get_adapter

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1


@dataclass
class _ZoneTarget:
    """Plain copy of the zone columns a pass needs, safe after session close."""
    id: int
    name: str
    port: int = DEFAULT_PORT
    source_type: Optional[str] = None
    config: str = ""


@dataclass
class _DeviceGroup:
    id: int
    device_type: str
    config: str
    zones: list[_ZoneTarget] = field(default_factory=list)


class ZonePoller:
    """One zone-poll pass per ``run()`` call."""

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        client: Optional[httpx.AsyncClient] = None,
        retention_days: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.client = client
        self.retention_days = (
            retention_days if retention_days is not None else settings.reading_retention_days
        )
        self._stored = 0
        self._failures = 0
        self._last_run: Optional[datetime] = None

    @property
    def stats(self) -> dict:
        return {
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "readings_stored": self._stored,
            "failures": self._failures,
        }

    async def run(self) -> dict:
        """Poll every configured zone once, then prune old readings."""
        self._stored = 0
        self._failures = 0

        async with open_client(self.client) as client:
            await self._poll_device_linked_zones(client)
            await self._poll_legacy_zones(client)

        pruned = self._prune_old_readings()
        self._last_run = datetime.now(timezone.utc)
        logger.info(
            "Climate poll completed: %d readings stored, %d failures, %d pruned",
            self._stored, self._failures, pruned,
        )
        return {**self.stats, "pruned": pruned}

    # ---- Phase A ----

    def _load_device_groups(self) -> list[_DeviceGroup]:
        db = self.session_factory()
        try:
            groups: list[_DeviceGroup] = []
            for device in db.query(HardwareDeviceModel).order_by(HardwareDeviceModel.id).all():
                zones = (
                    db.query(GrowingZoneModel)
                    .filter(GrowingZoneModel.hardware_device_id == device.id)
                    .order_by(GrowingZoneModel.id)
                    .all()
                )
                if not zones:
                    continue
                groups.append(_DeviceGroup(
                    id=device.id,
                    device_type=device.device_type,
                    config=device.config,
                    zones=[
                        _ZoneTarget(
                            id=z.id, name=z.name,
                            port=z.hardware_port if z.hardware_port is not None else DEFAULT_PORT,
                        )
                        for z in zones
                    ],
                ))
            return groups
        finally:
            db.close()

    async def _poll_device_linked_zones(self, client: httpx.AsyncClient) -> None:
        try:
            groups = self._load_device_groups()
        except SQLAlchemyError as exc:
            logger.warning("Climate poll: failed to query hardware devices: %s", exc)
            return

        if not groups:
            logger.debug("Climate poll: no device-linked zones")
            return

        for group in groups:
            adapter = get_adapter(group.device_type)
            if adapter is None:
                logger.warning(
                    "Climate poll: unknown device type '%s' for device %d",
                    group.device_type, group.id,
                )
                continue

            try:
                config = adapter.parse_config(group.config)
                readings = await adapter.fetch_for_ports(
                    client, config, {z.port for z in group.zones},
                )
            except PipelineError as exc:
                self._failures += 1
                logger.warning(
                    "Climate poll: %s fetch failed for device %d: %s",
                    group.device_type, group.id, exc,
                )
                continue
            except Exception as exc:
                self._failures += 1
                logger.error(
                    "Climate poll: unexpected error for device %d: %s",
                    group.id, exc, exc_info=True,
                )
                continue

            logger.info(
                "Climate poll: %s device %d fetch OK, distributing to %d zones",
                group.device_type, group.id, len(group.zones),
            )
            for zone in group.zones:
                raw = readings.get(zone.port)
                if raw is None:
                    self._failures += 1
                    logger.warning(
                        "Climate poll: no reading for port %d on device %d for zone '%s'",
                        zone.port, group.id, zone.name,
                    )
                    continue
                self._store_reading(zone, raw, group.device_type)

    # ---- Phase B ----

    def _load_legacy_zones(self) -> list[_ZoneTarget]:
        db = self.session_factory()
        try:
            zones = (
                db.query(GrowingZoneModel)
                .filter(GrowingZoneModel.data_source_type.isnot(None))
                .filter(GrowingZoneModel.hardware_device_id.is_(None))
                .order_by(GrowingZoneModel.id)
                .all()
            )
            return [
                _ZoneTarget(
                    id=z.id, name=z.name,
                    source_type=z.data_source_type, config=z.data_source_config,
                )
                for z in zones
            ]
        finally:
            db.close()

    async def _poll_legacy_zones(self, client: httpx.AsyncClient) -> None:
        try:
            zones = self._load_legacy_zones()
        except SQLAlchemyError as exc:
            logger.warning("Climate poll: failed to query legacy zones: %s", exc)
            return

        if not zones:
            logger.debug("Climate poll: no legacy zones with data sources configured")
            return

        logger.info("Climate poll: polling %d legacy zones", len(zones))

        for zone in zones:
            adapter = get_adapter(zone.source_type)
            if adapter is None:
                logger.warning(
                    "Climate poll: unknown data source type '%s' for zone '%s'",
                    zone.source_type, zone.name,
                )
                continue

            try:
                config = adapter.parse_config(zone.config)
            except PipelineError as exc:
                logger.warning("Climate poll: skipping zone '%s': %s", zone.name, exc)
                continue

            try:
                raw = await adapter.fetch_reading(client, config)
            except PipelineError as exc:
                self._failures += 1
                logger.warning(
                    "Climate poll: failed to fetch reading for zone '%s': %s", zone.name, exc,
                )
                continue
            except Exception as exc:
                self._failures += 1
                logger.error(
                    "Climate poll: unexpected error for zone '%s': %s",
                    zone.name, exc, exc_info=True,
                )
                continue

            self._store_reading(zone, raw, adapter.provider)

    # ---- storage ----

    def _store_reading(self, zone: _ZoneTarget, raw: RawReading, source: str) -> None:
        db = self.session_factory()
        try:
            db.add(ClimateReadingModel(
                zone_id=zone.id,
                zone_name=zone.name,
                temperature=raw.temperature_c,
                humidity=raw.humidity_pct,
                vpd=raw.vpd_kpa,
                precipitation=raw.precipitation_mm,
                source=source,
                recorded_at=datetime.now(timezone.utc),
            ))
            db.commit()
            self._stored += 1
            logger.info(
                "Climate poll: stored reading for '%s': %.1fC, %.1f%%",
                zone.name, raw.temperature_c, raw.humidity_pct,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            self._failures += 1
            logger.warning("Climate poll: failed to store reading for zone '%s': %s", zone.name, exc)
        finally:
            db.close()

    def _prune_old_readings(self) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=self.retention_days)
        db = self.session_factory()
        try:
            deleted = (
                db.query(ClimateReadingModel)
                .filter(ClimateReadingModel.recorded_at < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
            return deleted
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Climate poll: failed to prune old readings: %s", exc)
            return 0
        finally:
            db.close()


async def poll_all_zones(
    session_factory: SessionFactory = SessionLocal,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    """Run one zone-poll pass."""
    return await ZonePoller(session_factory, client).run()
