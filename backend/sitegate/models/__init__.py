from .customer import Customer
from .website_version import WebsiteVersion
from .customization_request import CustomizationRequest
from .regeneration_job import RegenerationJob, JobStatus
from .audit_log import AuditLog
from .notification_log import NotificationLog

__all__ = [
    "Customer",
    "WebsiteVersion",
    "CustomizationRequest",
    "RegenerationJob",
    "JobStatus",
    "AuditLog",
    "NotificationLog",
]
