"""
预订实体定义
Reservation 是预订的聚合根；version 列开启 SQLAlchemy 乐观锁，
每次 UPDATE 带 WHERE version = :expected 条件，过期写入会被拒绝
"""
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Numeric, Enum as SQLEnum, Index
)
from sqlalchemy.orm import validates
from hotel_reservations.database import Base
from hotel_reservations.exceptions import ValidationError

REMARKS_MAX_LENGTH = 500


# ============== 枚举定义 ==============

class ReservationStatus(str, Enum):
    """预订状态枚举"""
    PENDING = "PENDING"          # 待确认
    CONFIRMED = "CONFIRMED"      # 已确认
    CHECKED_IN = "CHECKED_IN"    # 已入住
    CHECKED_OUT = "CHECKED_OUT"  # 已退房（终态）
    CANCELLED = "CANCELLED"      # 已取消（终态）


# 不占用房间的状态，冲突检测时忽略
INACTIVE_STATUSES = (ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT)
# 允许修改字段或取消的状态
EDITABLE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


def nights_between(start_date: Optional[date], end_date: Optional[date]) -> int:
    """计算两个日期之间的晚数"""
    if start_date is None or end_date is None:
        return 0
    return (end_date - start_date).days


# ============== 实体定义 ==============

class Reservation(Base):
    """
    预订对象 - 聚合根
    client_id / room_id 引用外部客户服务与房间服务，不建立外键
    """
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, nullable=False, index=True)
    room_id = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)            # 入住日期
    end_date = Column(Date, nullable=False)              # 离店日期
    status = Column(SQLEnum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING)
    price_per_night = Column(Numeric(10, 2))             # 每晚价格
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    remarks = Column(String(REMARKS_MAX_LENGTH))         # 备注
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_reservations_room_dates", "room_id", "start_date", "end_date"),
    )
    __mapper_args__ = {"version_id_col": version}

    @validates("remarks")
    def _validate_remarks(self, key, value):
        if value is not None and len(value) > REMARKS_MAX_LENGTH:
            raise ValidationError(
                f"Remarks cannot exceed {REMARKS_MAX_LENGTH} characters", field="remarks"
            )
        return value

    @validates("created_at")
    def _validate_created_at(self, key, value):
        if self.created_at is not None and value != self.created_at:
            raise ValidationError("created_at cannot be changed", field="created_at")
        return value

    @property
    def nights(self) -> int:
        """入住晚数"""
        return nights_between(self.start_date, self.end_date)

    def recalculate_total(self) -> None:
        """按每晚价格和晚数重新计算总价"""
        if self.price_per_night is not None:
            self.total_amount = Decimal(self.price_per_night) * self.nights

    def can_be_modified(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def can_be_cancelled(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Reservation id={self.id} client={self.client_id} room={self.room_id} "
            f"{self.start_date}->{self.end_date} status={self.status}>"
        )
