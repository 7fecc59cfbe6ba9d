"""
Transactional notifications sent at each workflow transition.

Dispatchers are fire-and-forget sinks: callers wrap them so a failed send
never rolls back the transition it belongs to.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Protocol

import requests
from flask import current_app, render_template


class NotificationKind(str, Enum):
    CUSTOMER_ACK = "customer_ack"
    ADMIN_REVIEW_REQUEST = "admin_review_request"
    PAID_WELCOME = "paid_welcome"
    REVISION_DELIVERED = "revision_delivered"
    FAILURE_ALERT = "failure_alert"


SUBJECTS = {
    NotificationKind.CUSTOMER_ACK: "Changes received - we're on it!",
    NotificationKind.ADMIN_REVIEW_REQUEST: "Review website: {business_name}",
    NotificationKind.PAID_WELCOME: "Welcome to OatCode - your website is ready!",
    NotificationKind.REVISION_DELIVERED: "Your updated {site_label} is ready",
    NotificationKind.FAILURE_ALERT: "Failed update - customer {customer_id}",
}


class NotificationError(Exception):
    pass


class NotificationDispatcher(Protocol):
    def send(self, kind: NotificationKind, recipient: str, context: Dict[str, Any]) -> None:
        ...


class _SafeDict(dict):
    def __missing__(self, key):
        return ""


def render_notification(kind: NotificationKind, context: Dict[str, Any]):
    """Returns (subject, text, html) for a notification kind."""
    kind = NotificationKind(kind)
    subject = SUBJECTS[kind].format_map(_SafeDict(context))
    text = render_template(f"email/{kind.value}.txt", **context)
    html = render_template(f"email/{kind.value}.html", **context)
    return subject, text, html


class SendGridNotifier:
    API_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        sender_name: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout
        self._session = session or requests.Session()

    def send(self, kind, recipient, context):
        subject, text, html = render_notification(kind, context)

        payload = {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": {"email": self.sender, "name": self.sender_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html},
            ],
            "tracking_settings": {
                "click_tracking": {"enable": False},
                "open_tracking": {"enable": True},
            },
            "categories": [NotificationKind(kind).value],
        }

        try:
            response = self._session.post(
                self.API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NotificationError(f"SendGrid request failed: {exc}") from exc

        if response.status_code >= 400:
            raise NotificationError(
                f"SendGrid rejected {NotificationKind(kind).value} email "
                f"({response.status_code}): {response.text[:200]}"
            )

        current_app.logger.info(f"Sent {NotificationKind(kind).value} email to {recipient}")


class LoggingNotifier:
    """Development sink: renders the message and logs it instead of mailing."""

    def send(self, kind, recipient, context):
        subject, text, _ = render_notification(kind, context)
        current_app.logger.info(f"[mail:{NotificationKind(kind).value}] to={recipient} subject={subject!r}\n{text}")
