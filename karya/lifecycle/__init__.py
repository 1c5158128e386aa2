"""Application lifecycle: status enums, transition table and the engine driving them."""

from .lifecycle_engine import ApplicationLifecycleEngine, coerce_datetime
from .states import (
    ApplicationEvent,
    ApplicationStatus,
    Badge,
    InterviewStatus,
    PaymentProvider,
    PaymentStatus,
    ProjectStatus,
    Role,
    TaskStatus,
    next_application_status,
)

__all__ = [
    "ApplicationEvent",
    "ApplicationLifecycleEngine",
    "ApplicationStatus",
    "Badge",
    "InterviewStatus",
    "PaymentProvider",
    "PaymentStatus",
    "ProjectStatus",
    "Role",
    "TaskStatus",
    "coerce_datetime",
    "next_application_status",
]
