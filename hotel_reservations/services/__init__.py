# Services
from hotel_reservations.services.conflict_detector import ConflictDetector
from hotel_reservations.services.reservation_lifecycle import (
    LifecycleEvent, ReservationLifecycle, StateTransition, TRANSITIONS
)
from hotel_reservations.services.reservation_service import ReservationService

__all__ = [
    'ConflictDetector', 'LifecycleEvent', 'ReservationLifecycle',
    'StateTransition', 'TRANSITIONS', 'ReservationService',
]
