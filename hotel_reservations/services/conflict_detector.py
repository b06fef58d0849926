"""
冲突检测服务
本地预订重叠查询（fail-closed）+ 房间服务可用性检查（fail-open）
"""
import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional
from sqlalchemy.orm import Session
from hotel_reservations.clients.room_gateway import RoomGateway
from hotel_reservations.models.entities import Reservation, INACTIVE_STATUSES

logger = logging.getLogger(__name__)


class _RoomLocks:
    """
    按房间ID分配的进程内锁，串行化同一房间的"检查-写入"序列
    多进程部署时不生效，需配置 DATABASE_ISOLATION_LEVEL
    """

    def __init__(self):
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get(self, room_id: int) -> threading.Lock:
        with self._registry_lock:
            if room_id not in self._locks:
                self._locks[room_id] = threading.Lock()
            return self._locks[room_id]


_room_locks = _RoomLocks()


class ConflictDetector:
    """冲突检测服务"""

    def __init__(self, db: Session, room_gateway: RoomGateway):
        self.db = db
        self.room_gateway = room_gateway

    @contextmanager
    def room_guard(self, room_id: int) -> Iterator[None]:
        """在同一房间上串行执行冲突检查与写入"""
        lock = _room_locks.get(room_id)
        with lock:
            yield

    def find_conflicts(self, room_id: int, start_date: date, end_date: date,
                       exclude_reservation_id: Optional[int] = None) -> List[Reservation]:
        """
        查找与请求日期重叠的本地预订

        使用闭区间判定：existing.start <= requested.end AND existing.end >= requested.start，
        首尾相接的日期也算冲突
        """
        query = self.db.query(Reservation).filter(
            Reservation.room_id == room_id,
            Reservation.status.notin_(INACTIVE_STATUSES),
            Reservation.start_date <= end_date,
            Reservation.end_date >= start_date,
        )
        if exclude_reservation_id is not None:
            query = query.filter(Reservation.id != exclude_reservation_id)
        return query.all()

    def is_available(self, room_id: int, start_date: date, end_date: date,
                     exclude_reservation_id: Optional[int] = None) -> bool:
        """房间在日期范围内是否可预订"""
        conflicts = self.find_conflicts(room_id, start_date, end_date, exclude_reservation_id)
        if conflicts:
            logger.info(
                f"Room {room_id} {start_date} -> {end_date} conflicts with reservations "
                f"{[r.id for r in conflicts]}"
            )
            return False

        available = self.room_gateway.check_availability(room_id, start_date, end_date)
        if not available:
            logger.info(f"Room {room_id} reported unavailable by room authority")
        return available
