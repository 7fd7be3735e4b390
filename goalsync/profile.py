"""Device-bound profile identity, integrity checks, recovery and health reporting."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from .config import Settings, get_settings
from .errors import ProfileIntegrityFailure, StorageFailure
from .goals import _WireModel, format_timestamp, utc_now
from .storage.engines import KeyValueEngine
from .storage.local_store import LocalRecordStore
from .partition import ProfilePartitionResolver
from .telemetry import SyncEvent, emit_event

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id"
PROFILE_KEY = "profile"


class ProfilePreferences(_WireModel):
    theme: Literal["light", "dark"] = "light"
    notifications: bool = False


class DeviceInfo(_WireModel):
    device_id: str
    created_at: str


class Profile(_WireModel):
    """Basic device-scoped profile.

    Fields are kept as raw strings so that a damaged profile still loads and
    :meth:`ProfileService.validate_profile_integrity` can report on it.
    """

    device_id: str = ""
    created_at: str = ""
    last_active: str = ""
    preferences: Optional[ProfilePreferences] = Field(default_factory=ProfilePreferences)


def _parses(raw: str) -> bool:
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


class ProfileService:
    """Reads and writes the unpartitioned ``device_id`` and ``profile`` keys."""

    def __init__(
        self,
        engine: KeyValueEngine,
        *,
        settings: Optional[Settings] = None,
        platform: Optional[str] = None,
    ) -> None:
        self._engine = engine
        self._platform = platform or (settings or get_settings()).device_platform

    async def _read(self, key: str) -> Optional[Any]:
        try:
            raw = await self._engine.get(key)
        except Exception as exc:  # noqa: BLE001
            raise StorageFailure(f"Failed to read {key}", "read", key, exc) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise StorageFailure(f"Stored {key} is not valid JSON", "read", key, exc) from exc

    async def _write(self, key: str, model: BaseModel) -> None:
        payload = json.dumps(model.model_dump(mode="json", by_alias=True, exclude_none=True))
        try:
            await self._engine.set(key, payload)
        except Exception as exc:  # noqa: BLE001
            raise StorageFailure(f"Failed to write {key}", "write", key, exc) from exc

    async def generate_device_id(self) -> DeviceInfo:
        """Return the stable device identity, creating it on first use."""
        existing = await self._read(DEVICE_ID_KEY)
        if existing is not None:
            try:
                return DeviceInfo.model_validate(existing)
            except ValidationError:
                logger.warning("Stored device id is malformed; generating a new one")

        now = utc_now()
        info = DeviceInfo(
            device_id=f"{self._platform}_{uuid.uuid4()}_{int(now.timestamp() * 1000)}",
            created_at=format_timestamp(now),
        )
        await self._write(DEVICE_ID_KEY, info)
        logger.info("Generated device id %s", info.device_id)
        return info

    def _fresh_profile(self, info: DeviceInfo) -> Profile:
        return Profile(
            device_id=info.device_id,
            created_at=info.created_at,
            last_active=format_timestamp(utc_now()),
            preferences=ProfilePreferences(),
        )

    async def create_profile(self) -> Profile:
        profile = self._fresh_profile(await self.generate_device_id())
        await self._write(PROFILE_KEY, profile)
        return profile

    async def get_profile(self) -> Optional[Profile]:
        raw = await self._read(PROFILE_KEY)
        if raw is None:
            return None
        try:
            return Profile.model_validate(raw)
        except ValidationError as exc:
            raise StorageFailure("Stored profile is malformed", "read", PROFILE_KEY, exc) from exc

    async def update_profile(self, **updates: Any) -> Profile:
        current = await self.get_profile()
        if current is None:
            raise LookupError("No profile exists to update")
        data = current.model_dump()
        data.update(updates)
        data["last_active"] = format_timestamp(utc_now())
        profile = Profile.model_validate(data)
        issues = self.integrity_issues(profile)
        if issues:
            raise ProfileIntegrityFailure(issues)
        await self._write(PROFILE_KEY, profile)
        return profile

    @staticmethod
    def integrity_issues(profile: Profile) -> List[str]:
        issues: List[str] = []
        for name in ("device_id", "created_at", "last_active"):
            if not getattr(profile, name):
                issues.append(f"missing {name}")
        for name in ("created_at", "last_active"):
            value = getattr(profile, name)
            if value and not _parses(value):
                issues.append(f"unparseable {name}")
        if profile.device_id and "_" not in profile.device_id:
            issues.append("device_id has no platform prefix")
        return issues

    def validate_profile_integrity(self, profile: Profile) -> bool:
        return not self.integrity_issues(profile)

    async def recover_profile(self) -> Optional[Profile]:
        """Rebuild the profile from the stable device id; ``None`` if storage is unusable."""
        try:
            info = await self.generate_device_id()
            profile = self._fresh_profile(info)
            await self._write(PROFILE_KEY, profile)
        except StorageFailure:
            logger.exception("Profile recovery failed")
            return None
        emit_event(SyncEvent.PROFILE_RECOVERED, device_id=profile.device_id)
        logger.info("Recovered profile for %s", profile.device_id)
        return profile

    async def load_profile(self) -> Optional[Profile]:
        """Fetch the profile, creating or recovering it as needed."""
        try:
            existing = await self.get_profile()
        except StorageFailure as exc:
            logger.warning("Stored profile unreadable, recovering: %s", exc)
            return await self.recover_profile()

        if existing is None:
            try:
                return await self.create_profile()
            except StorageFailure:
                logger.exception("Failed to create profile")
                return None

        issues = self.integrity_issues(existing)
        if issues:
            logger.warning("Profile integrity check failed (%s); recovering", "; ".join(issues))
            return await self.recover_profile()
        return existing


@dataclass
class ProfileHealthStatus:
    profile_exists: bool = False
    profile_valid: bool = False
    storage_initialized: bool = False
    data_accessible: bool = False
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return self.profile_exists and self.profile_valid and self.storage_initialized and self.data_accessible


async def check_profile_health(
    service: ProfileService,
    local_store: LocalRecordStore,
    resolver: Optional[ProfilePartitionResolver] = None,
) -> ProfileHealthStatus:
    status = ProfileHealthStatus()
    try:
        profile = await service.get_profile()
    except StorageFailure as exc:
        status.issues.append(f"Health check error: {exc}")
        status.recommendations.append("Review error logs and restart")
        return status

    if profile is None:
        status.issues.append("No profile found in storage")
        status.recommendations.append("Initialize profile system")
        return status
    status.profile_exists = True

    status.profile_valid = service.validate_profile_integrity(profile)
    if not status.profile_valid:
        status.issues.append("Profile validation failed")
        status.recommendations.append("Attempt profile recovery")

    status.storage_initialized = (resolver or local_store.resolver).is_partitioned()
    if not status.storage_initialized:
        status.issues.append("Profile storage not initialized")
        status.recommendations.append("Load profile to initialize storage")

    try:
        await local_store.get_daily_goals()
        status.data_accessible = True
    except StorageFailure:
        logger.exception("Data accessibility check failed")
        status.issues.append("Data access issues detected")
        status.recommendations.append("Check storage permissions and integrity")
    return status


def generate_health_report(status: ProfileHealthStatus) -> str:
    def mark(value: bool) -> str:
        return "yes" if value else "no"

    lines = [
        "=== Profile Health Report ===",
        f"Overall health: {'healthy' if status.is_healthy else 'unhealthy'}",
        f"Profile exists: {mark(status.profile_exists)}",
        f"Profile valid: {mark(status.profile_valid)}",
        f"Storage initialized: {mark(status.storage_initialized)}",
        f"Data accessible: {mark(status.data_accessible)}",
    ]
    if status.issues:
        lines.append("")
        lines.append("Issues found:")
        lines.extend(f"- {issue}" for issue in status.issues)
    if status.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"- {item}" for item in status.recommendations)
    return "\n".join(lines)


__all__ = [
    "DEVICE_ID_KEY",
    "DeviceInfo",
    "PROFILE_KEY",
    "Profile",
    "ProfileHealthStatus",
    "ProfilePreferences",
    "ProfileService",
    "check_profile_health",
    "generate_health_report",
]
