"""
预订服务 - 用例编排层
协调冲突检测、客户服务、房间服务与生命周期状态机，是调用方唯一直接使用的入口
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from hotel_reservations.clients.client_gateway import ClientGateway
from hotel_reservations.clients.room_gateway import RoomGateway
from hotel_reservations.config import settings
from hotel_reservations.exceptions import (
    BusinessRuleError, ClientInvalidError, ConcurrentModificationError,
    DatesInvalidError, ReservationNotFoundError, RoomUnavailableError,
)
from hotel_reservations.models.entities import Reservation, ReservationStatus
from hotel_reservations.models.schemas import (
    ClientInfo, ReservationCreate, ReservationReport, ReservationResponse,
    ReservationUpdate, RoomInfo,
)
from hotel_reservations.services.conflict_detector import ConflictDetector
from hotel_reservations.services.reservation_lifecycle import LifecycleEvent, ReservationLifecycle

logger = logging.getLogger(__name__)


class ReservationService:
    """预订服务"""

    def __init__(self, db: Session, room_gateway: RoomGateway, client_gateway: ClientGateway,
                 today: Callable[[], date] = date.today,
                 default_price: Optional[Decimal] = None):
        self.db = db
        self.room_gateway = room_gateway
        self.client_gateway = client_gateway
        self.conflict_detector = ConflictDetector(db, room_gateway)
        self.lifecycle = ReservationLifecycle(db, room_gateway)
        # 支持注入"今天"，便于测试日历规则
        self._today = today
        self.default_price = default_price if default_price is not None else settings.DEFAULT_PRICE_PER_NIGHT

    # ============== 校验 ==============

    def validate_dates(self, start_date: Optional[date], end_date: Optional[date]) -> None:
        """校验日期：均必填，开始早于结束，开始不早于今天"""
        if start_date is None or end_date is None:
            raise DatesInvalidError("Start and end dates are required")
        if start_date >= end_date:
            raise DatesInvalidError("Start date must be before end date", field="end_date")
        if start_date < self._today():
            raise DatesInvalidError("Start date cannot be in the past")

    def _ensure_available(self, room_id: int, start_date: date, end_date: date,
                          exclude_reservation_id: Optional[int] = None) -> None:
        if not self.conflict_detector.is_available(room_id, start_date, end_date, exclude_reservation_id):
            raise RoomUnavailableError(room_id)

    def _resolve_price(self, room: Optional[RoomInfo], requested: Optional[Decimal]) -> Decimal:
        """价格优先级：房间服务 > 调用方 > 系统默认"""
        if room is not None and room.price_per_night is not None:
            return room.price_per_night
        if requested is not None:
            return requested
        return self.default_price

    # ============== 查询 ==============

    def get_reservation(self, reservation_id: int) -> Reservation:
        """获取单个预订，不存在时抛出 RESERVATION_NOT_FOUND"""
        reservation = self.db.query(Reservation).filter(Reservation.id == reservation_id).first()
        if not reservation:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    def get_reservations(self, status: Optional[ReservationStatus] = None,
                         client_id: Optional[int] = None) -> List[Reservation]:
        """
        获取预订列表
        - 按客户：入住日期降序
        - 按状态：入住日期升序
        - 不筛选：创建时间降序
        """
        query = self.db.query(Reservation)
        if status:
            query = query.filter(Reservation.status == status)
        if client_id is not None:
            query = query.filter(Reservation.client_id == client_id)

        if client_id is not None:
            query = query.order_by(Reservation.start_date.desc(), Reservation.id.desc())
        elif status:
            query = query.order_by(Reservation.start_date.asc(), Reservation.id.asc())
        else:
            query = query.order_by(Reservation.created_at.desc(), Reservation.id.desc())
        return query.all()

    # ============== 用例 ==============

    def create_reservation(self, data: ReservationCreate) -> ReservationResponse:
        """
        创建预订
        业务规则：
        - 校验日期
        - 房间在日期范围内可用（本地冲突 + 房间服务）
        - 客户存在且无未付费用
        - 价格取自房间服务，其次调用方，最后系统默认
        """
        logger.info(f"Creating reservation for client {data.client_id}, room {data.room_id}")
        self.validate_dates(data.start_date, data.end_date)

        with self.conflict_detector.room_guard(data.room_id):
            self._ensure_available(data.room_id, data.start_date, data.end_date)

            client = self.client_gateway.fetch_client(data.client_id)
            if client.has_unpaid_fees:
                raise BusinessRuleError(
                    "CLIENT_HAS_UNPAID_FEES",
                    "The client has unpaid fees and cannot make a reservation",
                    {"client_id": data.client_id},
                )

            room = self.room_gateway.fetch_room(data.room_id)

            reservation = Reservation(
                client_id=data.client_id,
                room_id=data.room_id,
                start_date=data.start_date,
                end_date=data.end_date,
                status=ReservationStatus.PENDING,
                remarks=data.remarks,
                price_per_night=self._resolve_price(room, data.price_per_night),
            )
            reservation.recalculate_total()

            self.db.add(reservation)
            self.db.commit()
            self.db.refresh(reservation)

        logger.info(f"Reservation {reservation.id} created, total {reservation.total_amount}")
        return self.to_response(reservation, client=client, room=room)

    def update_reservation(self, reservation_id: int, data: ReservationUpdate) -> Reservation:
        """修改预订（仅限待确认/已确认）"""
        logger.info(f"Updating reservation {reservation_id}")
        reservation = self.get_reservation(reservation_id)
        self.lifecycle.check(reservation, LifecycleEvent.EDIT)

        if data.version is not None and data.version != reservation.version:
            raise ConcurrentModificationError(reservation_id)

        changes = {
            k: v for k, v in data.model_dump(exclude_unset=True, exclude={"version"}).items()
            if v is not None
        }
        new_start = changes.get("start_date", reservation.start_date)
        new_end = changes.get("end_date", reservation.end_date)
        new_room = changes.get("room_id", reservation.room_id)
        self.validate_dates(new_start, new_end)

        with self.conflict_detector.room_guard(new_room):
            if (new_room != reservation.room_id
                    or new_start != reservation.start_date
                    or new_end != reservation.end_date):
                self._ensure_available(new_room, new_start, new_end, exclude_reservation_id=reservation_id)
            self.lifecycle.edit(reservation, changes)

        logger.info(f"Reservation {reservation_id} updated (version {reservation.version})")
        return reservation

    def confirm_reservation(self, reservation_id: int) -> Reservation:
        """确认预订"""
        return self.lifecycle.fire(self.get_reservation(reservation_id), LifecycleEvent.CONFIRM)

    def check_in(self, reservation_id: int) -> Reservation:
        """办理入住"""
        return self.lifecycle.fire(self.get_reservation(reservation_id), LifecycleEvent.CHECK_IN)

    def check_out(self, reservation_id: int) -> Reservation:
        """办理退房"""
        return self.lifecycle.fire(self.get_reservation(reservation_id), LifecycleEvent.CHECK_OUT)

    def cancel_reservation(self, reservation_id: int) -> Reservation:
        """取消预订"""
        return self.lifecycle.fire(self.get_reservation(reservation_id), LifecycleEvent.CANCEL)

    def generate_report(self) -> ReservationReport:
        """生成预订报表"""
        today = self._today()
        total = self.db.query(func.count(Reservation.id)).scalar() or 0

        occupancy = self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.CHECKED_IN
        ).all()

        upcoming = self.db.query(Reservation).filter(
            Reservation.start_date > today,
            Reservation.status.in_([ReservationStatus.CONFIRMED, ReservationStatus.PENDING])
        ).order_by(Reservation.start_date.asc(), Reservation.id.asc()).all()

        cancelled = self.db.query(func.count(Reservation.id)).filter(
            Reservation.status == ReservationStatus.CANCELLED
        ).scalar() or 0

        return ReservationReport(
            total_reservations=total,
            current_occupancy=len(occupancy),
            upcoming_reservations=len(upcoming),
            cancelled_reservations=cancelled,
            current_occupancy_list=[self.to_response(r, enrich=False) for r in occupancy],
            upcoming_reservations_list=[self.to_response(r, enrich=False) for r in upcoming],
            generated_at=datetime.now(),
        )

    # ============== 响应补全 ==============

    def _lookup_client(self, client_id: int) -> Optional[ClientInfo]:
        try:
            return self.client_gateway.fetch_client(client_id)
        except ClientInvalidError:
            logger.warning(f"Client {client_id} no longer known to client authority")
            return None

    def to_response(self, reservation: Reservation, enrich: bool = True,
                    client: Optional[ClientInfo] = None,
                    room: Optional[RoomInfo] = None) -> ReservationResponse:
        """构建响应，补全客户姓名与房间号/房型（每次实时查询，不缓存在实体上）"""
        response = ReservationResponse.model_validate(reservation)
        if enrich:
            if client is None:
                client = self._lookup_client(reservation.client_id)
            if room is None:
                room = self.room_gateway.fetch_room(reservation.room_id)
        if client is not None:
            response.client_name = client.full_name
        if room is not None:
            response.room_number = room.number
            response.room_type = room.type
        return response
