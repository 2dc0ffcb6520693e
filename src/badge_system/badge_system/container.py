from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .badges.factory import BadgeStrategyFactory
from .badges.geolocation import GeolocationProvider
from .badges.mysql_badge_repository import MySQLBadgeRepository
from .badges.nfc import NfcReader, NfcReaderHandle, NfcScanSession
from .badges.repository import BadgeRepository
from .badges.resolver import BadgeActionResolver
from .badges.service import BadgeService
from .core.constants import (
    DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    DEFAULT_PRESENCE_QUEUE_SIZE,
    DEFAULT_SITES_CACHE_SECONDS,
    TELEWORK_SITE,
)
from .core.exceptions import ConflictError
from .database.connection import DBConfig, DatabaseConnection
from .locations.authorizer import LocationAuthorizer
from .locations.mysql_location_repository import MySQLLocationRepository
from .locations.repository import LocationRepository
from .reports.service import ReportService
from .requests.mysql_request_repository import MySQLRequestRepository
from .requests.repository import RequestRepository
from .requests.service import ModificationWorkflow
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .sessions.service import SessionService
from .users.mysql_user_repository import MySQLUserRepository
from .users.presence import PresenceBoard, PresenceFeed
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    badges_repo: BadgeRepository
    locations_repo: LocationRepository
    schedules_repo: ScheduleRepository
    requests_repo: RequestRepository

    authorizer: LocationAuthorizer
    badge_service: BadgeService
    workflow: ModificationWorkflow
    session_service: SessionService
    report_service: ReportService
    presence_feed: PresenceFeed

    caller_address: Optional[str] = None
    conn: Optional[DatabaseConnection] = None
    nfc_reader: Optional[NfcReaderHandle] = None

    def start_nfc_scan(self, *, poll_timeout: float = 0.5) -> NfcScanSession:
        if self.nfc_reader is None:
            raise ConflictError("Aucun lecteur NFC configuré", code="nfc_unavailable")
        return self.badge_service.start_nfc_scan(self.nfc_reader, poll_timeout=poll_timeout)


def assemble(
    *,
    users_repo: UserRepository,
    badges_repo: BadgeRepository,
    locations_repo: LocationRepository,
    schedules_repo: ScheduleRepository,
    requests_repo: RequestRepository,
    geolocation: Optional[GeolocationProvider] = None,
    geolocation_timeout: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    telework_site: str = TELEWORK_SITE,
    default_weekly_hours: Optional[float] = None,
    presence_queue_size: int = DEFAULT_PRESENCE_QUEUE_SIZE,
    sites_cache_seconds: float = DEFAULT_SITES_CACHE_SECONDS,
    caller_address: Optional[str] = None,
    conn: Optional[DatabaseConnection] = None,
    nfc_reader: Optional[NfcReader] = None,
) -> Container:
    """Wire services around already-built repositories."""

    authorizer = LocationAuthorizer(
        locations_repo,
        address_provider=(lambda: caller_address) if caller_address else None,
        sites_ttl=sites_cache_seconds,
    )
    badge_service = BadgeService(
        badges_repo,
        users_repo,
        authorizer,
        resolver=BadgeActionResolver(factory=BadgeStrategyFactory(), telework_site=telework_site),
        geolocation=geolocation,
        geolocation_timeout=geolocation_timeout,
    )
    workflow = ModificationWorkflow(requests_repo, badges_repo, users_repo)
    session_service = SessionService(badges_repo, requests_repo, workflow, schedules=schedules_repo)
    report_service = ReportService(
        users_repo,
        badges_repo,
        schedules_repo,
        requests=requests_repo,
        default_weekly_hours=default_weekly_hours,
    )
    presence_feed = PresenceFeed(PresenceBoard(), maxsize=presence_queue_size)

    return Container(
        users_repo=users_repo,
        badges_repo=badges_repo,
        locations_repo=locations_repo,
        schedules_repo=schedules_repo,
        requests_repo=requests_repo,
        authorizer=authorizer,
        badge_service=badge_service,
        workflow=workflow,
        session_service=session_service,
        report_service=report_service,
        presence_feed=presence_feed,
        caller_address=caller_address,
        conn=conn,
        nfc_reader=NfcReaderHandle(nfc_reader) if nfc_reader is not None else None,
    )


def build_container(
    *,
    db_config: dict,
    geolocation_timeout: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
    telework_site: str = TELEWORK_SITE,
    default_weekly_hours: Optional[float] = None,
    presence_queue_size: int = DEFAULT_PRESENCE_QUEUE_SIZE,
    sites_cache_seconds: float = DEFAULT_SITES_CACHE_SECONDS,
    caller_address: Optional[str] = None,
    nfc_reader: Optional[NfcReader] = None,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_settings(db_config))

    return assemble(
        users_repo=MySQLUserRepository(conn),
        badges_repo=MySQLBadgeRepository(conn),
        locations_repo=MySQLLocationRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        requests_repo=MySQLRequestRepository(conn),
        geolocation_timeout=geolocation_timeout,
        telework_site=telework_site,
        default_weekly_hours=default_weekly_hours,
        presence_queue_size=presence_queue_size,
        sites_cache_seconds=sites_cache_seconds,
        caller_address=caller_address,
        conn=conn,
        nfc_reader=nfc_reader,
    )
