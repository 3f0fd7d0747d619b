"""
Audit Models for the Household Ledger

Every ledger mutation and every entitlement change is logged for audit purposes.
This provides:
1. Traceability of how a balance came to be what it is
2. Debugging information when a purchase goes wrong
3. The data an "undo" or history screen needs

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Concrete entries
    ENTRY_ADDED = "entry_added"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"
    ENTRY_RESTORED = "entry_restored"

    # Recurring templates
    TEMPLATE_CREATED = "template_created"
    TEMPLATE_DEACTIVATED = "template_deactivated"
    OCCURRENCE_OVERRIDDEN = "occurrence_overridden"
    OCCURRENCE_EXCLUDED = "occurrence_excluded"
    PREMIUM_GATE_DENIED = "premium_gate_denied"

    # Balance
    BALANCE_ADJUSTED = "balance_adjusted"

    # Entitlement
    PREMIUM_STATUS_CHANGED = "premium_status_changed"
    PURCHASE_STARTED = "purchase_started"
    PURCHASE_COMPLETED = "purchase_completed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'template', 'entitlement')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one purchase flow)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added(entry_id, title, amount, day)
        event = AuditEventBuilder.premium_status_changed("checking", "premium")
    """

    @staticmethod
    def entry_added(
        entry_id: UUID,
        title: str,
        amount: str,
        entry_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry added: {title} ({amount}) on {entry_date.isoformat()}",
            details={
                "title": title,
                "amount": amount,
                "entry_date": entry_date.isoformat(),
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        entry_id: UUID,
        amount: str,
        entry_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry updated: {amount} on {entry_date.isoformat()}",
            details={
                "amount": amount,
                "entry_date": entry_date.isoformat(),
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(
        entry_id: UUID,
        found: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            severity=AuditSeverity.INFO if found else AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description="Entry deleted" if found else "Delete requested for unknown entry",
            details={"found": found},
            is_user_action=True,
        )

    @staticmethod
    def entry_restored(
        entry_id: UUID,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_RESTORED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description="Deleted entry restored",
            is_user_action=True,
        )

    @staticmethod
    def template_created(
        template_id: UUID,
        title: str,
        amount: str,
        start_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_CREATED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Monthly expense created: {title} ({amount}) from {start_date.isoformat()}",
            details={
                "title": title,
                "amount": amount,
                "start_date": start_date.isoformat(),
            },
            is_user_action=True,
        )

    @staticmethod
    def template_deactivated(
        template_id: UUID,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_DEACTIVATED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Monthly expense deactivated",
            is_user_action=True,
        )

    @staticmethod
    def occurrence_overridden(
        template_id: UUID,
        month: str,
        entry_id: UUID,
        materialized: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_OVERRIDDEN,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Occurrence of {month} edited",
            details={
                "month": month,
                "entry_id": str(entry_id),
                "materialized": materialized,
            },
            is_user_action=True,
        )

    @staticmethod
    def occurrence_excluded(
        template_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_EXCLUDED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Occurrence of {month} deleted",
            details={"month": month},
            is_user_action=True,
        )

    @staticmethod
    def premium_gate_denied(
        action: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREMIUM_GATE_DENIED,
            severity=AuditSeverity.WARNING,
            entity_type="entitlement",
            correlation_id=correlation_id,
            description=f"Premium required for: {action}",
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def balance_adjusted(
        entry_id: Optional[UUID],
        previous_balance: str,
        target_balance: str,
        entry_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Balance adjusted from {previous_balance} to {target_balance}",
            details={
                "previous_balance": previous_balance,
                "target_balance": target_balance,
                "entry_date": entry_date.isoformat(),
            },
            is_user_action=True,
        )

    @staticmethod
    def premium_status_changed(
        previous: str,
        current: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREMIUM_STATUS_CHANGED,
            severity=AuditSeverity.WARNING if current == "error" else AuditSeverity.INFO,
            entity_type="entitlement",
            correlation_id=correlation_id,
            description=f"Premium status: {previous} -> {current}",
            details={
                "previous": previous,
                "current": current,
            },
        )

    @staticmethod
    def purchase_started(
        requester: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASE_STARTED,
            entity_type="entitlement",
            correlation_id=correlation_id,
            description=f"Premium purchase started by {requester}",
            details={"requester": requester},
            is_user_action=True,
        )

    @staticmethod
    def purchase_completed(
        outcome: str,
        message: str,
        delivered: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PURCHASE_COMPLETED,
            severity=AuditSeverity.INFO if outcome == "success" else AuditSeverity.WARNING,
            entity_type="entitlement",
            correlation_id=correlation_id,
            description=f"Premium purchase finished: {outcome}",
            details={
                "outcome": outcome,
                "message": message,
                "delivered": delivered,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        error_code: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_code=error_code,
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
