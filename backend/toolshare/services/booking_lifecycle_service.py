# backend/toolshare/services/booking_lifecycle_service.py
"""
Booking Lifecycle Service for ToolShare

Owns the booking state machine:

    PENDING  -> ACCEPTED | REJECTED | CANCELLED
    ACCEPTED -> ONGOING | CANCELLED
    ONGOING  -> COMPLETED

Every operation runs as one unit against one booking: the per-booking
Redis mutex (when available) serializes callers, the row is reloaded
inside the transaction, guards are checked before the first write, and
the optimistic version check on flush turns a lost race into
InvalidTransitionException. Domain events are written to the outbox in
the same transaction, so a failed operation emits nothing.

Time is always passed in by the caller; nothing here reads the clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
import logging
import re
from typing import Any, Callable, List, Optional, Sequence, Set, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.booking_lock import booking_lock_sync
from ..core.config import settings
from ..core.constants import MAX_REASON_MESSAGE_LENGTH, PICKUP_HOUR_PATTERN
from ..core.enums import ActorRole, BookingAction, ReasonKind, parse_reason
from ..core.exceptions import (
    ActivationTooEarlyException,
    AlreadyConfirmedException,
    BusinessRuleException,
    ConflictException,
    CancellationNotAllowedException,
    ForbiddenException,
    InvalidTransitionException,
    InvalidValidationCodeException,
    NotFoundException,
    ValidationException,
    booking_error_details,
)
from ..core.timezone_utils import ensure_utc, get_marketplace_today
from ..events.booking_events import (
    BookingAccepted,
    BookingActivated,
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    BookingRejected,
    DepositSettlementRequested,
    DisputeOpened,
    DisputeResolved,
    RefundRequested,
    ReturnConfirmed,
)
from ..events.publisher import EventPublisher
from ..models.booking import Booking, BookingStatus
from ..models.dispute import Dispute, DisputeOutcome
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .cancellation_policy import CancellationDecision, CancellationPolicy, refund_amount
from .dispute_gate import DisputeGate, EvidenceFile
from .pricing import quote_rental
from .return_confirmation import ReturnConfirmationWorkflow
from .review_eligibility import ReviewEligibilityGate
from .validation_code_issuer import CodeReveal, ValidationCodeIssuer

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PICKUP_HOUR_RE = re.compile(PICKUP_HOUR_PATTERN)
_ACTION_TARGETS = {
    BookingAction.ACCEPT: BookingStatus.ACCEPTED,
    BookingAction.REJECT: BookingStatus.REJECTED,
    BookingAction.ACTIVATE: BookingStatus.ONGOING,
    BookingAction.CANCEL: BookingStatus.CANCELLED,
    BookingAction.COMPLETE: BookingStatus.COMPLETED,
}
_DISPUTABLE_STATUSES = {
    BookingStatus.ACCEPTED.value,
    BookingStatus.ONGOING.value,
    BookingStatus.COMPLETED.value,
}


@dataclass
class BookingView:
    """A booking as seen by one of its parties."""

    booking: Booking
    viewer_role: ActorRole
    allowed_actions: List[str] = field(default_factory=list)


class BookingLifecycleService(BaseService):
    """
    Service layer for booking state transitions.

    Components are injectable so tests can swap the clock-free policies
    (cancellation notice, grace period, code length) for fixed values.
    """

    def __init__(
        self,
        db: Session,
        *,
        cancellation_policy: Optional[CancellationPolicy] = None,
        code_issuer: Optional[ValidationCodeIssuer] = None,
        return_workflow: Optional[ReturnConfirmationWorkflow] = None,
        dispute_gate: Optional[DisputeGate] = None,
        review_gate: Optional[ReviewEligibilityGate] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.dispute_repository = RepositoryFactory.create_dispute_repository(db)
        self.event_publisher = EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )
        self.cancellation_policy = cancellation_policy or CancellationPolicy()
        self.code_issuer = code_issuer or ValidationCodeIssuer()
        self.return_workflow = return_workflow or ReturnConfirmationWorkflow()
        self.dispute_gate = dispute_gate or DisputeGate(self.dispute_repository)
        self.review_gate = review_gate or ReviewEligibilityGate(
            RepositoryFactory.create_tool_review_repository(db),
            RepositoryFactory.create_app_review_repository(db),
        )

    # ------------------------------------------------------------------ helpers

    def _load_booking(self, booking_id: str, *, for_update: bool = False) -> Booking:
        if for_update:
            booking = self.booking_repository.get_for_update(booking_id)
        else:
            booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @staticmethod
    def _role_of(booking: Booking, user_id: str) -> ActorRole:
        if user_id == booking.owner_id:
            return ActorRole.OWNER
        if user_id == booking.renter_id:
            return ActorRole.RENTER
        raise ForbiddenException(
            "You are not a party to this booking",
            code="NOT_A_PARTY",
            details={"booking_id": booking.id},
        )

    def _require_role(
        self, booking: Booking, user_id: str, role: ActorRole, now: datetime
    ) -> ActorRole:
        actual = self._role_of(booking, user_id)
        if actual != role:
            raise ForbiddenException(
                f"Only the {role.value} can perform this action",
                code="WRONG_PARTY",
                details=booking_error_details(
                    booking.status, self.allowed_actions(booking, user_id, now)
                ),
            )
        return actual

    def _invalid_transition(
        self, booking: Booking, user_id: Optional[str], now: datetime, action: BookingAction
    ) -> InvalidTransitionException:
        allowed = self.allowed_actions(booking, user_id, now) if user_id else set()
        return InvalidTransitionException(
            f"Cannot {action.value} a booking in status {booking.status}",
            current_status=booking.status,
            allowed_actions=allowed,
        )

    def _transition(
        self,
        booking: Booking,
        action: BookingAction,
        actor: ActorRole,
        user_id: Optional[str],
        now: datetime,
    ) -> None:
        target = _ACTION_TARGETS[action]
        if not booking.can_transition_to(target):
            raise self._invalid_transition(booking, user_id, now, action)
        previous = booking.status
        booking.status = target.value
        prometheus_metrics.record_booking_transition(previous, target.value, actor.value)
        self.logger.info(
            "Booking %s: %s -> %s by %s",
            booking.id,
            previous,
            target.value,
            actor.value,
            extra={
                "booking_id": booking.id,
                "from_status": previous,
                "to_status": target.value,
                "actor": actor.value,
            },
        )

    def _run_locked(
        self,
        booking_id: str,
        user_id: Optional[str],
        now: datetime,
        operation: str,
        fn: Callable[[Booking], T],
    ) -> T:
        """
        Apply ``fn`` to a freshly loaded booking inside one transaction.

        A concurrent writer that committed first makes our flush stale; the
        caller then sees InvalidTransitionException carrying the status the
        winner left behind.
        """
        with booking_lock_sync(booking_id):
            try:
                with self.transaction():
                    booking = self._load_booking(booking_id, for_update=True)
                    result = fn(booking)
                    self.booking_repository.flush()
            except StaleDataError as exc:
                self.logger.warning(
                    "Booking %s changed concurrently during %s", booking_id, operation
                )
                current = self.booking_repository.get_by_id(booking_id)
                allowed: Set[str] = set()
                if current is not None and user_id:
                    allowed = self.allowed_actions(current, user_id, now)
                raise InvalidTransitionException(
                    "The booking was changed by another request",
                    current_status=current.status if current is not None else None,
                    allowed_actions=allowed,
                    details={"booking_id": booking_id},
                ) from exc
        return result

    @staticmethod
    def _clean_message(message: Optional[str]) -> Optional[str]:
        if message is None:
            return None
        text = message.strip()
        if len(text) > MAX_REASON_MESSAGE_LENGTH:
            raise ValidationException(
                f"Message cannot exceed {MAX_REASON_MESSAGE_LENGTH} characters",
                code="MESSAGE_TOO_LONG",
            )
        return text or None

    def _complete(
        self, booking: Booking, actor: ActorRole, user_id: Optional[str], now: datetime
    ) -> None:
        self._transition(booking, BookingAction.COMPLETE, actor, user_id, now)
        booking.completed_at = ensure_utc(now)
        self.event_publisher.publish(
            BookingCompleted(booking_id=booking.id, completed_by=actor.value, completed_at=now),
            now=now,
        )

    # ---------------------------------------------------------- allowed actions

    def allowed_actions(
        self, booking: Booking, user_id: Optional[str], now: datetime
    ) -> Set[str]:
        """Actions the given party could attempt right now."""
        if not user_id or not booking.is_party(user_id):
            return set()
        role = ActorRole.OWNER if user_id == booking.owner_id else ActorRole.RENTER
        status = booking.status
        today = get_marketplace_today(now)
        actions: Set[BookingAction] = set()

        if status in _DISPUTABLE_STATUSES and not booking.has_active_claim:
            actions.add(BookingAction.OPEN_DISPUTE)

        if role == ActorRole.OWNER:
            if status == BookingStatus.PENDING.value:
                actions.update({BookingAction.ACCEPT, BookingAction.REJECT, BookingAction.CANCEL})
            elif status == BookingStatus.ACCEPTED.value:
                actions.add(BookingAction.CANCEL)
                if today >= booking.start_date:
                    actions.add(BookingAction.ACTIVATE)
            elif status == BookingStatus.ONGOING.value and not booking.has_active_claim:
                if not booking.pickup_tool:
                    actions.add(BookingAction.ACKNOWLEDGE_RETURN)
                if booking.renter_has_returned:
                    actions.add(BookingAction.OPEN_RETURN_CLAIM)
                if booking.has_ended(today):
                    actions.add(BookingAction.COMPLETE)
        else:
            if status == BookingStatus.PENDING.value:
                actions.add(BookingAction.CANCEL)
            elif status == BookingStatus.ACCEPTED.value:
                if self.cancellation_policy.evaluate(booking, now, ActorRole.RENTER).allowed:
                    actions.add(BookingAction.CANCEL)
            elif status == BookingStatus.ONGOING.value:
                if not booking.has_used_return_button:
                    actions.add(BookingAction.CONFIRM_RETURN)
            elif status == BookingStatus.COMPLETED.value:
                if self.review_gate.can_review_tool(user_id, booking):
                    actions.add(BookingAction.REVIEW)

        return {action.value for action in actions}

    # ------------------------------------------------------------------ queries

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, user_id: str, now: datetime) -> BookingView:
        booking = self._load_booking(booking_id)
        role = self._role_of(booking, user_id)
        return BookingView(
            booking=booking,
            viewer_role=role,
            allowed_actions=sorted(self.allowed_actions(booking, user_id, now)),
        )

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        user_id: str,
        now: datetime,
        *,
        role: Optional[ActorRole] = None,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[BookingView]:
        bookings = self.booking_repository.list_for_user(
            user_id, role=role, status=status, skip=skip, limit=limit
        )
        return [
            BookingView(
                booking=booking,
                viewer_role=ActorRole.OWNER if booking.owner_id == user_id else ActorRole.RENTER,
                allowed_actions=sorted(self.allowed_actions(booking, user_id, now)),
            )
            for booking in bookings
        ]

    @BaseService.measure_operation("evaluate_cancellation")
    def evaluate_cancellation(
        self, booking_id: str, user_id: str, now: datetime
    ) -> CancellationDecision:
        """Preview the cancellation decision without changing anything."""
        booking = self._load_booking(booking_id)
        role = self._role_of(booking, user_id)
        return self.cancellation_policy.evaluate(booking, now, role)

    @BaseService.measure_operation("reveal_validation_code")
    def reveal_validation_code(self, booking_id: str, user_id: str, now: datetime) -> CodeReveal:
        booking = self._load_booking(booking_id)
        self._require_role(booking, user_id, ActorRole.RENTER, now)
        return self.code_issuer.reveal(booking, now)

    # -------------------------------------------------------------- operations

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        *,
        renter_id: str,
        owner_id: str,
        tool_id: str,
        start_date: date,
        end_date: date,
        daily_price: Decimal,
        now: datetime,
        deposit: Decimal = Decimal("0"),
        pickup_hour: Optional[str] = None,
    ) -> Booking:
        """
        Create a PENDING booking request.

        Raises:
            ValidationException: dates, parties, pickup hour or amounts are invalid
        """
        if renter_id == owner_id:
            raise ValidationException("You cannot rent your own tool", code="SAME_PARTY")
        if end_date < start_date:
            raise ValidationException(
                "End date must be on or after the start date", code="INVALID_DATES"
            )
        if start_date < get_marketplace_today(now):
            raise ValidationException("Start date is in the past", code="INVALID_DATES")
        if pickup_hour is not None and not _PICKUP_HOUR_RE.fullmatch(pickup_hour):
            raise ValidationException(
                "Pickup hour must use the 24h HH:MM format", code="INVALID_PICKUP_HOUR"
            )
        if Decimal(daily_price) <= 0:
            raise ValidationException("Daily price must be positive", code="INVALID_PRICE")
        if Decimal(deposit) < 0:
            raise ValidationException("Deposit cannot be negative", code="INVALID_DEPOSIT")

        quote = quote_rental(Decimal(daily_price), start_date, end_date, Decimal(deposit))

        with self.transaction():
            booking = self.booking_repository.create(
                renter_id=renter_id,
                owner_id=owner_id,
                tool_id=tool_id,
                start_date=start_date,
                end_date=end_date,
                pickup_hour=pickup_hour,
                daily_price=quote.daily_price,
                rental_days=quote.days,
                subtotal=quote.subtotal,
                service_fee=quote.service_fee,
                total_price=quote.total_price,
                deposit=quote.deposit,
                status=BookingStatus.PENDING.value,
                created_at=ensure_utc(now),
            )
            self.event_publisher.publish(
                BookingCreated(
                    booking_id=booking.id,
                    renter_id=renter_id,
                    owner_id=owner_id,
                    tool_id=tool_id,
                    total_price=quote.total_price,
                    deposit=quote.deposit,
                    created_at=now,
                ),
                now=now,
            )

        self.logger.info(
            "Booking %s requested", booking.id, extra={"booking_id": booking.id, "tool_id": tool_id}
        )
        return booking

    @BaseService.measure_operation("accept_booking")
    def accept_booking(self, booking_id: str, owner_id: str, now: datetime) -> Booking:
        def _accept(booking: Booking) -> Booking:
            self._require_role(booking, owner_id, ActorRole.OWNER, now)
            self._transition(booking, BookingAction.ACCEPT, ActorRole.OWNER, owner_id, now)
            self.code_issuer.issue(booking)
            booking.accepted_at = ensure_utc(now)
            self.event_publisher.publish(
                BookingAccepted(
                    booking_id=booking.id,
                    renter_id=booking.renter_id,
                    owner_id=booking.owner_id,
                    accepted_at=now,
                ),
                now=now,
            )
            return booking

        return self._run_locked(booking_id, owner_id, now, "accept", _accept)

    @BaseService.measure_operation("reject_booking")
    def reject_booking(
        self,
        booking_id: str,
        owner_id: str,
        reason: Any,
        now: datetime,
        message: Optional[str] = None,
    ) -> Booking:
        reason_code = parse_reason(ReasonKind.REFUSAL, reason)
        text = self._clean_message(message)

        def _reject(booking: Booking) -> Booking:
            self._require_role(booking, owner_id, ActorRole.OWNER, now)
            self._transition(booking, BookingAction.REJECT, ActorRole.OWNER, owner_id, now)
            booking.refusal_reason = reason_code.value
            booking.refusal_message = text
            booking.rejected_at = ensure_utc(now)
            self.event_publisher.publish(
                BookingRejected(
                    booking_id=booking.id,
                    renter_id=booking.renter_id,
                    reason=reason_code.value,
                    rejected_at=now,
                ),
                now=now,
            )
            return booking

        return self._run_locked(booking_id, owner_id, now, "reject", _reject)

    @BaseService.measure_operation("activate_booking")
    def activate_booking(
        self, booking_id: str, owner_id: str, supplied_code: str, now: datetime
    ) -> Booking:
        """
        Start the rental once the owner confirms the renter's code.

        Raises:
            InvalidTransitionException: booking is not ACCEPTED
            ActivationTooEarlyException: today is before the start date
            InvalidValidationCodeException: code mismatch
        """

        def _activate(booking: Booking) -> Booking:
            self._require_role(booking, owner_id, ActorRole.OWNER, now)
            if not booking.can_transition_to(BookingStatus.ONGOING):
                raise self._invalid_transition(booking, owner_id, now, BookingAction.ACTIVATE)
            today = get_marketplace_today(now)
            if today < booking.start_date:
                raise ActivationTooEarlyException(
                    booking.start_date.isoformat(), today.isoformat(), current_status=booking.status
                )
            if not self.code_issuer.redeem(booking, supplied_code):
                raise InvalidValidationCodeException(current_status=booking.status)

            self._transition(booking, BookingAction.ACTIVATE, ActorRole.OWNER, owner_id, now)
            booking.validation_code = None
            booking.activated_at = ensure_utc(now)
            self.event_publisher.publish(
                BookingActivated(booking_id=booking.id, activated_at=now), now=now
            )
            return booking

        return self._run_locked(booking_id, owner_id, now, "activate", _activate)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_id: str,
        user_id: str,
        reason: Any,
        now: datetime,
        message: Optional[str] = None,
    ) -> Booking:
        """
        Cancel a PENDING or ACCEPTED booking.

        The refund decision is taken here, once, and stored on the booking.

        Raises:
            InvalidTransitionException: booking is not cancellable in its status
            CancellationNotAllowedException: renter inside the notice window
        """
        reason_code = parse_reason(ReasonKind.CANCELLATION, reason)
        text = self._clean_message(message)

        def _cancel(booking: Booking) -> Booking:
            role = self._role_of(booking, user_id)
            if not booking.can_transition_to(BookingStatus.CANCELLED):
                raise self._invalid_transition(booking, user_id, now, BookingAction.CANCEL)

            decision = self.cancellation_policy.evaluate(booking, now, role)
            if not decision.allowed:
                raise CancellationNotAllowedException(
                    current_status=booking.status,
                    allowed_actions=self.allowed_actions(booking, user_id, now),
                    details={
                        "policy_basis": decision.policy_basis,
                        "cutoff": decision.cutoff.isoformat() if decision.cutoff else None,
                    },
                )

            amount = refund_amount(booking, decision.refund_tier)
            self._transition(booking, BookingAction.CANCEL, role, user_id, now)
            booking.cancellation_reason = reason_code.value
            booking.cancellation_message = text
            booking.cancelled_by_role = role.value
            booking.refund_tier = decision.refund_tier.value
            booking.refund_amount = amount
            booking.cancelled_at = ensure_utc(now)
            booking.validation_code = None

            self.event_publisher.publish(
                BookingCancelled(
                    booking_id=booking.id,
                    cancelled_by=role.value,
                    reason=reason_code.value,
                    refund_tier=decision.refund_tier.value,
                    cancelled_at=now,
                    refund_amount=amount,
                ),
                now=now,
            )
            if amount > 0:
                self.event_publisher.publish(
                    RefundRequested(
                        booking_id=booking.id,
                        amount=amount,
                        refund_tier=decision.refund_tier.value,
                    ),
                    now=now,
                )
            return booking

        return self._run_locked(booking_id, user_id, now, "cancel", _cancel)

    @BaseService.measure_operation("confirm_return")
    def confirm_return(self, booking_id: str, renter_id: str, now: datetime) -> Booking:
        """
        Renter's one-shot "I returned the tool" button.

        Raises:
            AlreadyConfirmedException: the button was already used
            InvalidTransitionException: booking is not ONGOING
        """

        def _confirm(booking: Booking) -> Booking:
            self._require_role(booking, renter_id, ActorRole.RENTER, now)
            if booking.has_used_return_button:
                raise AlreadyConfirmedException(
                    current_status=booking.status,
                    allowed_actions=self.allowed_actions(booking, renter_id, now),
                )
            if booking.status != BookingStatus.ONGOING.value:
                raise self._invalid_transition(
                    booking, renter_id, now, BookingAction.CONFIRM_RETURN
                )

            self.return_workflow.record_renter_return(booking, now)
            self.event_publisher.publish(
                ReturnConfirmed(booking_id=booking.id, owner_id=booking.owner_id, returned_at=now),
                now=now,
            )
            if self.return_workflow.is_ready_to_complete(booking):
                self._complete(booking, ActorRole.RENTER, renter_id, now)
            return booking

        return self._run_locked(booking_id, renter_id, now, "confirm_return", _confirm)

    @BaseService.measure_operation("acknowledge_return")
    def acknowledge_return(self, booking_id: str, owner_id: str, now: datetime) -> Booking:
        """
        Owner confirms the tool is back.

        Completes the booking when the renter has also confirmed and no claim
        is open; otherwise the acknowledgement is recorded and waits.
        """

        def _acknowledge(booking: Booking) -> Booking:
            self._require_role(booking, owner_id, ActorRole.OWNER, now)
            if booking.status != BookingStatus.ONGOING.value:
                raise self._invalid_transition(
                    booking, owner_id, now, BookingAction.ACKNOWLEDGE_RETURN
                )
            self.return_workflow.record_owner_acknowledgement(booking, now)
            if self.return_workflow.is_ready_to_complete(booking):
                self._complete(booking, ActorRole.OWNER, owner_id, now)
            return booking

        return self._run_locked(booking_id, owner_id, now, "acknowledge_return", _acknowledge)

    @BaseService.measure_operation("open_return_claim")
    def open_return_claim(
        self,
        booking_id: str,
        owner_id: str,
        *,
        reason: Any,
        description: str,
        evidence: Sequence[EvidenceFile],
        now: datetime,
    ) -> Dispute:
        """Owner disputes the returned tool instead of acknowledging it."""

        def _claim(booking: Booking) -> Dispute:
            self._require_role(booking, owner_id, ActorRole.OWNER, now)
            if booking.status != BookingStatus.ONGOING.value or not booking.renter_has_returned:
                raise self._invalid_transition(
                    booking, owner_id, now, BookingAction.OPEN_RETURN_CLAIM
                )
            return self._open_dispute(
                booking, owner_id, ActorRole.OWNER, reason, description, evidence, now
            )

        return self._run_locked(booking_id, owner_id, now, "open_return_claim", _claim)

    @BaseService.measure_operation("open_dispute")
    def open_dispute(
        self,
        booking_id: str,
        user_id: str,
        *,
        reason: Any,
        description: str,
        evidence: Sequence[EvidenceFile],
        now: datetime,
    ) -> Dispute:
        def _open(booking: Booking) -> Dispute:
            role = self._role_of(booking, user_id)
            if booking.status not in _DISPUTABLE_STATUSES:
                raise self._invalid_transition(booking, user_id, now, BookingAction.OPEN_DISPUTE)
            return self._open_dispute(booking, user_id, role, reason, description, evidence, now)

        return self._run_locked(booking_id, user_id, now, "open_dispute", _open)

    def _open_dispute(
        self,
        booking: Booking,
        user_id: str,
        role: ActorRole,
        reason: Any,
        description: str,
        evidence: Sequence[EvidenceFile],
        now: datetime,
    ) -> Dispute:
        dispute = self.dispute_gate.open_dispute(
            booking,
            opened_by_id=user_id,
            opened_by_role=role,
            reason=reason,
            description=description,
            evidence=evidence,
            now=now,
        )
        self.event_publisher.publish(
            DisputeOpened(
                dispute_id=dispute.id,
                booking_id=booking.id,
                opened_by=role.value,
                reason=dispute.reason,
                evidence_count=len(dispute.evidence_items),
            ),
            now=now,
        )
        return dispute

    @BaseService.measure_operation("get_dispute")
    def get_dispute(self, dispute_id: str, user_id: str) -> Dispute:
        dispute = self.dispute_repository.get_by_id(dispute_id)
        if dispute is None:
            raise NotFoundException("Dispute not found", details={"dispute_id": dispute_id})
        self._role_of(self._load_booking(dispute.booking_id), user_id)
        return dispute

    @BaseService.measure_operation("resolve_dispute")
    def resolve_dispute(
        self,
        dispute_id: str,
        resolver_id: str,
        *,
        outcome: DisputeOutcome,
        now: datetime,
        deposit_retained: Optional[Decimal] = None,
        note: Optional[str] = None,
    ) -> Dispute:
        """
        Close a dispute (moderator action).

        Retaining part of the deposit is the only way a deposit is ever
        forfeited. If this was the last open claim on an ONGOING booking whose
        renter has returned the tool, the booking completes.
        """
        dispute = self.dispute_repository.get_by_id(dispute_id)
        if dispute is None:
            raise NotFoundException("Dispute not found", details={"dispute_id": dispute_id})

        def _resolve(booking: Booking) -> Dispute:
            self.dispute_repository.refresh(dispute)
            resolved = self.dispute_gate.resolve_dispute(
                dispute,
                booking,
                outcome=outcome,
                resolved_by_id=resolver_id,
                now=now,
                deposit_retained=deposit_retained,
                note=self._clean_message(note),
            )
            self.event_publisher.publish(
                DisputeResolved(
                    dispute_id=resolved.id,
                    booking_id=booking.id,
                    outcome=outcome.value,
                    resolved_at=now,
                ),
                now=now,
            )
            retained = Decimal(resolved.deposit_retained or 0)
            if retained > 0:
                self.event_publisher.publish(
                    DepositSettlementRequested(
                        dispute_id=resolved.id,
                        booking_id=booking.id,
                        retained_amount=retained,
                        released_amount=Decimal(booking.deposit) - retained,
                    ),
                    now=now,
                )
            if (
                booking.status == BookingStatus.ONGOING.value
                and booking.renter_has_returned
                and not booking.has_active_claim
            ):
                self._complete(booking, ActorRole.SYSTEM, None, now)
            return resolved

        return self._run_locked(dispute.booking_id, None, now, "resolve_dispute", _resolve)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, owner_id: str, now: datetime) -> Booking:
        """
        Owner override: close an ONGOING rental after its end date.

        Raises:
            InvalidTransitionException: booking is not ONGOING
            BusinessRuleException: rental period not over, or a claim is open
        """

        def _override(booking: Booking) -> Booking:
            self._require_role(booking, owner_id, ActorRole.OWNER, now)
            if not booking.can_transition_to(BookingStatus.COMPLETED):
                raise self._invalid_transition(booking, owner_id, now, BookingAction.COMPLETE)
            if booking.has_active_claim:
                raise BusinessRuleException(
                    "A claim is open on this booking",
                    code="ACTIVE_CLAIM",
                    details=booking_error_details(
                        booking.status, self.allowed_actions(booking, owner_id, now)
                    ),
                )
            if not booking.has_ended(get_marketplace_today(now)):
                raise BusinessRuleException(
                    "The rental period has not ended yet",
                    code="RENTAL_NOT_ENDED",
                    details=booking_error_details(
                        booking.status,
                        self.allowed_actions(booking, owner_id, now),
                        {"end_date": booking.end_date.isoformat()},
                    ),
                )
            self._complete(booking, ActorRole.OWNER, owner_id, now)
            return booking

        return self._run_locked(booking_id, owner_id, now, "complete", _override)

    @BaseService.measure_operation("auto_complete_returned")
    def auto_complete_returned(self, now: datetime, limit: Optional[int] = None) -> int:
        """
        Complete returned bookings the owner left unacknowledged past the grace period.

        Safe to re-run: each booking is re-checked under its own lock and
        transaction, so one already completed (or acknowledged, or claimed)
        in the meantime is skipped.
        """
        cutoff = ensure_utc(now) - self.return_workflow.grace_period
        candidates = self.booking_repository.find_auto_complete_candidates(
            cutoff, limit or settings.auto_complete_batch_size
        )
        candidate_ids = [booking.id for booking in candidates]
        completed = 0

        def _auto_complete(booking: Booking) -> bool:
            if not self.return_workflow.is_auto_complete_due(booking, now):
                return False
            self._complete(booking, ActorRole.SYSTEM, None, now)
            return True

        for booking_id in candidate_ids:
            try:
                if self._run_locked(booking_id, None, now, "auto_complete", _auto_complete):
                    completed += 1
            except ConflictException as exc:
                self.logger.info(
                    "Skipping auto-complete for booking %s: %s",
                    booking_id,
                    exc,
                    extra={"booking_id": booking_id},
                )

        prometheus_metrics.inc_auto_completed(completed)
        if completed:
            self.logger.info(
                "Auto-completed %d returned bookings", completed, extra={"count": completed}
            )
        return completed
