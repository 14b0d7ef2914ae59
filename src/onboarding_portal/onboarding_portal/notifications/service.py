from __future__ import annotations

import logging
from html import escape
from typing import Optional

from ..core.enums import NotifyFailurePolicy
from ..core.exceptions import NotificationError
from ..users.model import User
from .mailer import Mailer

logger = logging.getLogger(__name__)


class NotificationService:
    """Employee-facing emails sent after lifecycle transitions.

    Delivery failures follow `policy`: LOG swallows and logs them, RAISE
    propagates NotificationError. Callers may override per message.
    """

    def __init__(
        self,
        mailer: Mailer,
        *,
        policy: NotifyFailurePolicy = NotifyFailurePolicy.LOG,
        portal_url: str = "http://localhost:3000",
    ):
        self._mailer = mailer
        self._policy = policy
        self._portal_url = portal_url.rstrip("/")

    @property
    def policy(self) -> NotifyFailurePolicy:
        return self._policy

    def welcome(self, user: User, temp_password: str, *, policy: Optional[NotifyFailurePolicy] = None) -> bool:
        body = f"""
            <h2>Welcome to the company, {escape(user.name)}!</h2>
            <p>An account has been created for you. Use these credentials to sign in:</p>
            <p><strong>Email:</strong> {escape(user.email)}<br>
               <strong>Temporary password:</strong> {escape(temp_password)}</p>
            <p>Sign in at <a href="{self._portal_url}/login">{self._portal_url}/login</a>,
               change your password and complete the onboarding form.</p>
            <p>Best regards,<br>HR Team</p>
        """
        return self._deliver(user.email, "Welcome - Your Onboarding Account", body, policy=policy)

    def approved(self, user: User, *, policy: Optional[NotifyFailurePolicy] = None) -> bool:
        body = f"""
            <h2>Onboarding approved</h2>
            <p>Hello {escape(user.name)},</p>
            <p>Your onboarding has been approved. You can now access the attendance portal
               and start marking your attendance.</p>
            <p>Best regards,<br>HR Team</p>
        """
        return self._deliver(user.email, "Onboarding Approved - Welcome Aboard!", body, policy=policy)

    def rejected(
        self,
        user: User,
        reason: Optional[str] = None,
        *,
        policy: Optional[NotifyFailurePolicy] = None,
    ) -> bool:
        reason_html = f"<p><strong>Reason:</strong> {escape(reason)}</p>" if reason else ""
        body = f"""
            <h2>Onboarding status update</h2>
            <p>Hello {escape(user.name)},</p>
            <p>Your onboarding application has been rejected.</p>
            {reason_html}
            <p>Please contact HR for more information.</p>
            <p>Best regards,<br>HR Team</p>
        """
        return self._deliver(user.email, "Onboarding Status Update", body, policy=policy)

    def credentials_reset(
        self,
        user: User,
        temp_password: str,
        *,
        policy: Optional[NotifyFailurePolicy] = None,
    ) -> bool:
        body = f"""
            <h2>Your login credentials have been reset</h2>
            <p>Hello {escape(user.name)},</p>
            <p><strong>Email:</strong> {escape(user.email)}<br>
               <strong>Temporary password:</strong> {escape(temp_password)}</p>
            <p>You will be asked to change this password after signing in at
               <a href="{self._portal_url}/login">{self._portal_url}/login</a>.</p>
            <p>Best regards,<br>HR Team</p>
        """
        return self._deliver(user.email, "Your Login Credentials", body, policy=policy)

    def _deliver(self, to: str, subject: str, html_body: str, *, policy: Optional[NotifyFailurePolicy]) -> bool:
        effective = policy or self._policy
        try:
            sent = self._mailer.send(to, subject, html_body)
        except NotificationError:
            if effective == NotifyFailurePolicy.RAISE:
                raise
            logger.warning("email %r to %s failed; continuing", subject, to, exc_info=True)
            return False

        if not sent and effective == NotifyFailurePolicy.RAISE:
            raise NotificationError(f"Email to {to} could not be sent")
        return sent
