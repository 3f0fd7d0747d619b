"""
Audit Logger

DESIGN DECISION: Every ledger mutation and entitlement change is logged.
This provides:
1. Traceability of every balance
2. Debugging capability for the asynchronous purchase flow
3. History the user can look back at

The audit logger:
- Is async so storage backends can do I/O
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.config import get_settings
from household_ledger.models.audit import AuditEvent, AuditEventBuilder
from household_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Optional[str] = None) -> None:
    """Route structlog output through stdlib logging at the configured level."""
    level = level or get_settings().app.log_level
    logging.basicConfig(format="%(message)s", level=level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_added(
        self,
        entry_id: UUID,
        title: str,
        amount: str,
        entry_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new concrete entry."""
        await self.log(AuditEventBuilder.entry_added(
            entry_id=entry_id,
            title=title,
            amount=amount,
            entry_date=entry_date,
            correlation_id=correlation_id,
        ))

    async def log_entry_updated(
        self,
        entry_id: UUID,
        amount: str,
        entry_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_updated(
            entry_id=entry_id,
            amount=amount,
            entry_date=entry_date,
            correlation_id=correlation_id,
        ))

    async def log_entry_deleted(
        self,
        entry_id: UUID,
        found: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            found=found,
            correlation_id=correlation_id,
        ))

    async def log_entry_restored(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_restored(
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    async def log_template_created(
        self,
        template_id: UUID,
        title: str,
        amount: str,
        start_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of a monthly expense."""
        await self.log(AuditEventBuilder.template_created(
            template_id=template_id,
            title=title,
            amount=amount,
            start_date=start_date,
            correlation_id=correlation_id,
        ))

    async def log_template_deactivated(
        self,
        template_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.template_deactivated(
            template_id=template_id,
            correlation_id=correlation_id,
        ))

    async def log_occurrence_overridden(
        self,
        template_id: UUID,
        month: str,
        entry_id: UUID,
        materialized: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.occurrence_overridden(
            template_id=template_id,
            month=month,
            entry_id=entry_id,
            materialized=materialized,
            correlation_id=correlation_id,
        ))

    async def log_occurrence_excluded(
        self,
        template_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.occurrence_excluded(
            template_id=template_id,
            month=month,
            correlation_id=correlation_id,
        ))

    async def log_premium_gate_denied(
        self,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.premium_gate_denied(
            action=action,
            correlation_id=correlation_id,
        ))

    async def log_balance_adjusted(
        self,
        entry_id: Optional[UUID],
        previous_balance: str,
        target_balance: str,
        entry_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a manual balance correction."""
        await self.log(AuditEventBuilder.balance_adjusted(
            entry_id=entry_id,
            previous_balance=previous_balance,
            target_balance=target_balance,
            entry_date=entry_date,
            correlation_id=correlation_id,
        ))

    async def log_premium_status_changed(
        self,
        previous: str,
        current: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.premium_status_changed(
            previous=previous,
            current=current,
            correlation_id=correlation_id,
        ))

    async def log_purchase_started(
        self,
        requester: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.purchase_started(
            requester=requester,
            correlation_id=correlation_id,
        ))

    async def log_purchase_completed(
        self,
        outcome: str,
        message: str,
        delivered: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.purchase_completed(
            outcome=outcome,
            message=message,
            delivered=delivered,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        error_code: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            error_code=error_code,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a purchase).
    Pass it through all subsequent operations.
    """
    return uuid4()
