from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.repository import AuditRepository
from .audit.service import AuditService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_MAX_UPLOAD_BYTES, DEFAULT_SESSION_TTL_HOURS
from .core.enums import NotifyFailurePolicy
from .database.connection import DBConfig, DatabaseConnection
from .lifecycle.mysql_lifecycle_repository import MySQLLifecycleRepository
from .lifecycle.repository import LifecycleRepository
from .lifecycle.service import LifecycleService
from .notifications.mailer import Mailer, SmtpMailer, SmtpSettings
from .notifications.service import NotificationService
from .onboarding.mysql_onboarding_repository import MySQLOnboardingRepository
from .onboarding.repository import OnboardingRepository
from .onboarding.service import OnboardingService
from .onboarding.storage import DocumentStorage
from .roster.mysql_roster_repository import MySQLRosterRepository
from .roster.repository import RosterRepository
from .roster.service import RosterService
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AccountService, AuthService


@dataclass(frozen=True)
class Repositories:
    users: UserRepository
    sessions: SessionRepository
    onboarding: OnboardingRepository
    roster: RosterRepository
    lifecycle: LifecycleRepository
    attendance: AttendanceRepository
    audit: AuditRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    repos: Repositories

    session_service: SessionService
    notification_service: NotificationService
    audit_service: AuditService
    auth_service: AuthService
    account_service: AccountService
    onboarding_service: OnboardingService
    roster_service: RosterService
    lifecycle_service: LifecycleService
    attendance_service: AttendanceService


def assemble_container(
    repos: Repositories,
    *,
    mailer: Mailer,
    storage: DocumentStorage,
    conn: Optional[DatabaseConnection] = None,
    session_ttl_hours: int = DEFAULT_SESSION_TTL_HOURS,
    notify_policy: NotifyFailurePolicy = NotifyFailurePolicy.LOG,
    portal_url: str = "http://localhost:3000",
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Wire services over a set of repositories (MySQL in the app, in-memory in tests)."""
    session_service = SessionService(repos.sessions, ttl_hours=session_ttl_hours, clock=clock)
    notification_service = NotificationService(mailer, policy=notify_policy, portal_url=portal_url)
    audit_service = AuditService(repos.audit)

    return Container(
        conn=conn,
        repos=repos,
        session_service=session_service,
        notification_service=notification_service,
        audit_service=audit_service,
        auth_service=AuthService(repos.users),
        account_service=AccountService(repos.users, notification_service, session_service, repos.roster),
        onboarding_service=OnboardingService(repos.users, repos.onboarding, storage),
        roster_service=RosterService(repos.roster),
        lifecycle_service=LifecycleService(
            repos.users,
            repos.lifecycle,
            repos.roster,
            session_service,
            notification_service,
            audit_service,
            clock=clock,
        ),
        attendance_service=AttendanceService(repos.attendance, repos.users, audit_service, clock=clock),
    )


def build_container(
    *,
    db_config: dict,
    smtp_config: Optional[dict] = None,
    upload_dir: str = "uploads",
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    session_ttl_hours: int = DEFAULT_SESSION_TTL_HOURS,
    notify_policy: NotifyFailurePolicy = NotifyFailurePolicy.LOG,
    portal_url: str = "http://localhost:3000",
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connect_timeout=int(db_config.get("connect_timeout", 10)),
    )
    conn = DatabaseConnection.get_instance(config)

    repos = Repositories(
        users=MySQLUserRepository(conn),
        sessions=MySQLSessionRepository(conn),
        onboarding=MySQLOnboardingRepository(conn),
        roster=MySQLRosterRepository(conn),
        lifecycle=MySQLLifecycleRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        audit=MySQLAuditRepository(conn),
    )
    return assemble_container(
        repos,
        mailer=SmtpMailer(SmtpSettings.from_mapping(smtp_config or {})),
        storage=DocumentStorage(upload_dir, max_bytes=max_upload_bytes),
        conn=conn,
        session_ttl_hours=session_ttl_hours,
        notify_policy=notify_policy,
        portal_url=portal_url,
    )
