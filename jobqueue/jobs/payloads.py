"""
Job types used by the operations backend and the payload schema of each.

Binding a schema to a job type makes the queue validate payloads at
submission time and hand the parsed model to the handler.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class JobType(str, Enum):
    """Known background job types."""

    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    GENERATE_REPORT = "generate_report"
    PROCESS_CALL_RECORDING = "process_call_recording"
    BACKUP_DATA = "backup_data"
    SEND_NOTIFICATION = "send_notification"
    ANALYZE_CALL_SENTIMENT = "analyze_call_sentiment"
    CLEANUP_OLD_FILES = "cleanup_old_files"
    UPDATE_USER_STATS = "update_user_stats"
    PROCESS_BILLING = "process_billing"
    MAINTENANCE_CLEANUP = "maintenance_cleanup"


EmailTemplateType = Literal[
    "account_verification",
    "password_reset",
    "welcome_email",
    "call_completed",
    "call_missed",
    "call_failed",
    "reminder",
    "newsletter",
    "announcement",
    "system_alert",
    "billing_alert",
    "security_alert",
    "custom",
]


class EmailJobData(BaseModel):
    to: str = Field(..., min_length=1, description="Recipient address")
    template_type: EmailTemplateType = Field(default="custom")
    template_data: dict[str, Any] = Field(default_factory=dict)


class SMSJobData(BaseModel):
    to: str = Field(..., min_length=1, description="Recipient phone number")
    message: str = Field(..., min_length=1)
    priority: Literal["normal", "urgent"] = "normal"


class CallRecordingJobData(BaseModel):
    call_id: int
    recording_path: str
    transcript: str | None = None


class DateRange(BaseModel):
    start: datetime
    end: datetime


class ReportJobData(BaseModel):
    type: Literal["monthly", "weekly", "daily"]
    user_id: str
    date_range: DateRange
    format: Literal["pdf", "excel", "csv"]


class NotificationJobData(BaseModel):
    user_id: str
    template_id: int
    variables: dict[str, Any] = Field(default_factory=dict)
    channels: list[Literal["email", "sms", "push"]] = Field(..., min_length=1)


class MaintenanceCleanupData(BaseModel):
    older_than_ms: int | None = Field(
        default=None, ge=0, description="Age threshold, queue default if omitted"
    )
    dry_run: bool = False


PAYLOAD_MODELS: dict[JobType, type[BaseModel]] = {
    JobType.SEND_EMAIL: EmailJobData,
    JobType.SEND_SMS: SMSJobData,
    JobType.PROCESS_CALL_RECORDING: CallRecordingJobData,
    JobType.GENERATE_REPORT: ReportJobData,
    JobType.SEND_NOTIFICATION: NotificationJobData,
    JobType.MAINTENANCE_CLEANUP: MaintenanceCleanupData,
}
