"""
预订生命周期状态机

PENDING -> CONFIRMED -> CHECKED_IN -> CHECKED_OUT
PENDING/CONFIRMED -> CANCELLED

每次转换：校验 -> 修改状态 -> 提交（版本号 +1，更新 updated_at）-> 推送房间状态。
房间状态推送是副作用，失败只记录日志，不回滚已提交的转换。
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from hotel_reservations.clients.room_gateway import RoomGateway, RoomStatus
from hotel_reservations.exceptions import ConcurrentModificationError, InvalidTransitionError
from hotel_reservations.models.entities import Reservation, ReservationStatus

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    """生命周期事件"""
    CONFIRM = "confirm"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    CANCEL = "cancel"
    EDIT = "edit"


@dataclass(frozen=True)
class StateTransition:
    """
    状态转换定义

    Attributes:
        trigger: 触发事件
        from_states: 允许的源状态
        to_state: 目标状态，None 表示保持原状态（字段编辑）
        error_code: 源状态不符时的错误码
        error_message: 源状态不符时的错误信息
        room_status: 提交后推送给房间服务的状态
    """

    trigger: LifecycleEvent
    from_states: Tuple[ReservationStatus, ...]
    to_state: Optional[ReservationStatus]
    error_code: str
    error_message: str
    room_status: Optional[RoomStatus] = None

    def is_allowed(self, status: ReservationStatus) -> bool:
        return status in self.from_states


TRANSITIONS: Dict[LifecycleEvent, StateTransition] = {
    t.trigger: t for t in (
        StateTransition(
            trigger=LifecycleEvent.CONFIRM,
            from_states=(ReservationStatus.PENDING,),
            to_state=ReservationStatus.CONFIRMED,
            error_code="CONFIRM_IMPOSSIBLE",
            error_message="Only pending reservations can be confirmed",
            room_status=RoomStatus.RESERVED,
        ),
        StateTransition(
            trigger=LifecycleEvent.CHECK_IN,
            from_states=(ReservationStatus.CONFIRMED,),
            to_state=ReservationStatus.CHECKED_IN,
            error_code="CHECKIN_IMPOSSIBLE",
            error_message="Check-in is only possible for confirmed reservations",
            room_status=RoomStatus.OCCUPIED,
        ),
        StateTransition(
            trigger=LifecycleEvent.CHECK_OUT,
            from_states=(ReservationStatus.CHECKED_IN,),
            to_state=ReservationStatus.CHECKED_OUT,
            error_code="CHECKOUT_IMPOSSIBLE",
            error_message="Check-out is only possible for checked-in reservations",
            room_status=RoomStatus.FREE,
        ),
        StateTransition(
            trigger=LifecycleEvent.CANCEL,
            from_states=(ReservationStatus.PENDING, ReservationStatus.CONFIRMED),
            to_state=ReservationStatus.CANCELLED,
            error_code="CANCEL_IMPOSSIBLE",
            error_message="Only pending or confirmed reservations can be cancelled",
            room_status=RoomStatus.FREE,
        ),
        StateTransition(
            trigger=LifecycleEvent.EDIT,
            from_states=(ReservationStatus.PENDING, ReservationStatus.CONFIRMED),
            to_state=None,
            error_code="MODIFICATION_IMPOSSIBLE",
            error_message="Only pending or confirmed reservations can be modified",
        ),
    )
}


class ReservationLifecycle:
    """预订状态机"""

    def __init__(self, db: Session, room_gateway: RoomGateway):
        self.db = db
        self.room_gateway = room_gateway

    @staticmethod
    def can_fire(status: ReservationStatus, event: LifecycleEvent) -> bool:
        """检查事件在给定状态下是否合法"""
        transition = TRANSITIONS.get(LifecycleEvent(event))
        return transition is not None and transition.is_allowed(status)

    @staticmethod
    def allowed_events(status: ReservationStatus) -> List[LifecycleEvent]:
        """给定状态下可触发的事件"""
        return [e for e, t in TRANSITIONS.items() if t.is_allowed(status)]

    def check(self, reservation: Reservation, event: LifecycleEvent) -> StateTransition:
        """校验转换，不合法时抛出 InvalidTransitionError"""
        transition = TRANSITIONS[LifecycleEvent(event)]
        if not transition.is_allowed(reservation.status):
            status = ReservationStatus(reservation.status).value
            logger.warning(
                f"Rejected {transition.trigger.value} on reservation {reservation.id} in status {status}"
            )
            raise InvalidTransitionError(
                transition.error_code,
                f"{transition.error_message} (current status: {status})",
                reservation_id=reservation.id,
                current_status=status,
            )
        return transition

    def fire(self, reservation: Reservation, event: LifecycleEvent) -> Reservation:
        """执行状态转换：先提交本地状态，再推送房间状态"""
        transition = self.check(reservation, event)
        previous = reservation.status
        reservation.status = transition.to_state
        self.commit(reservation)
        logger.info(
            f"Reservation {reservation.id}: {ReservationStatus(previous).value} -> "
            f"{reservation.status.value} (trigger: {transition.trigger.value})"
        )

        if transition.room_status is not None:
            self._push_room_status(reservation.room_id, transition.room_status)
        return reservation

    def edit(self, reservation: Reservation, changes: Dict[str, Any]) -> Reservation:
        """编辑字段（状态不变），并重新计算总价"""
        self.check(reservation, LifecycleEvent.EDIT)
        for key, value in changes.items():
            setattr(reservation, key, value)
        reservation.recalculate_total()
        self.commit(reservation)
        return reservation

    def commit(self, reservation: Reservation) -> None:
        """提交当前单元；版本号过期时转换为 CONCURRENT_MODIFICATION"""
        reservation_id = reservation.id
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Stale write rejected for reservation {reservation_id}: {e}")
            raise ConcurrentModificationError(reservation_id) from e
        self.db.refresh(reservation)

    def _push_room_status(self, room_id: int, status: RoomStatus) -> None:
        try:
            self.room_gateway.push_status(room_id, status)
        except Exception as e:
            logger.error(f"Room status push {room_id} -> {status.value} raised: {e}")
