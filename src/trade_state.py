"""
Trade Status State Machine

Defines valid trade status transitions and validates them.
"""
from typing import Dict, Set

from model.enums import TradeStatus


class InvalidStatusTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, from_status, to_status):
        self.from_status = TradeStatus(from_status)
        self.to_status = TradeStatus(to_status)
        super().__init__(
            f"Invalid trade status transition: {self.from_status.value} -> {self.to_status.value}"
        )


class TradeStateMachine:
    """
    Defines and validates trade status transitions.

    Prevents invalid state changes (e.g., rejected -> pending).
    """

    TRANSITIONS: Dict[TradeStatus, Set[TradeStatus]] = {
        TradeStatus.pending: {
            TradeStatus.countered,
            TradeStatus.accepted,
            TradeStatus.rejected,
            TradeStatus.cancelled,
            TradeStatus.disputed,
        },
        TradeStatus.countered: {
            TradeStatus.countered,  # further counter-offers
            TradeStatus.accepted,
            TradeStatus.rejected,
            TradeStatus.cancelled,
            TradeStatus.disputed,
        },
        TradeStatus.accepted: {
            TradeStatus.completed,
            TradeStatus.cancelled,
            TradeStatus.disputed,
        },
        TradeStatus.completed: {
            TradeStatus.disputed,
        },
        TradeStatus.rejected: set(),  # Terminal state
        TradeStatus.cancelled: set(),  # Terminal state
        TradeStatus.disputed: set(),  # Terminal state; resolved by staff outside the API
    }

    # Statuses that block a second trade on the same coin by the same initiator
    ACTIVE: Set[TradeStatus] = {
        TradeStatus.pending,
        TradeStatus.countered,
        TradeStatus.accepted,
    }

    # Offers may only be added while the trade is still being negotiated
    NEGOTIABLE: Set[TradeStatus] = {
        TradeStatus.pending,
        TradeStatus.countered,
    }

    @classmethod
    def can_transition(cls, from_status, to_status) -> bool:
        return TradeStatus(to_status) in cls.TRANSITIONS.get(TradeStatus(from_status), set())

    @classmethod
    def validate_transition(cls, from_status, to_status) -> None:
        if not cls.can_transition(from_status, to_status):
            raise InvalidStatusTransitionError(from_status, to_status)

    @classmethod
    def apply(cls, trade, to_status) -> None:
        """Validate and set ``trade.status``."""
        cls.validate_transition(trade.status, to_status)
        trade.status = TradeStatus(to_status).value

    @classmethod
    def is_terminal(cls, status) -> bool:
        return not cls.TRANSITIONS.get(TradeStatus(status))

    @classmethod
    def can_cancel(cls, trade, user_id: str) -> bool:
        """
        Initiator may withdraw while negotiating; once accepted, either party
        may call it off.
        """
        status = TradeStatus(trade.status)
        if status in cls.NEGOTIABLE:
            return user_id == trade.initiator_id
        if status == TradeStatus.accepted:
            return trade.is_participant(user_id)
        return False
