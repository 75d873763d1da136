"""Enums shared across the domain layer."""

from enum import Enum


class InteractionType(str, Enum):
    """A user's current relationship to one job."""

    QUEUED = "queued"
    APPLIED = "applied"
    PASSED = "passed"
    APPLICATION_FAILED = "application_failed"
    EXPIRED = "expired"


class TransitionStatus(str, Enum):
    """Outcome of an optimistic swipe on a single card."""

    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


class ResumeProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"
