"""
Pydantic 模式定义
用于 API 请求/响应验证，以及外部房间服务/客户服务的报文解析
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, Field, ConfigDict
from hotel_reservations.models.entities import ReservationStatus, REMARKS_MAX_LENGTH


# ============== 外部服务 Schemas ==============

class RoomInfo(BaseModel):
    """房间服务返回的房间信息（camelCase 报文）"""
    id: int
    number: Optional[str] = None
    type: Optional[str] = None
    price_per_night: Optional[Decimal] = Field(None, alias="pricePerNight")
    status: Optional[str] = None
    available: bool = True
    description: Optional[str] = None
    capacity: Optional[int] = None
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ClientInfo(BaseModel):
    """客户服务返回的客户信息（camelCase 报文）"""
    id: int
    last_name: Optional[str] = Field(None, alias="lastName")
    first_name: Optional[str] = Field(None, alias="firstName")
    email: Optional[str] = None
    phone: Optional[str] = None
    has_unpaid_fees: bool = Field(False, alias="hasUnpaidFees")
    stay_count: int = Field(0, alias="stayCount")
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts)


class AvailabilityPayload(BaseModel):
    available: bool = True
    model_config = ConfigDict(extra="ignore")


class ClientHistoryPayload(BaseModel):
    unpaid_fees: bool = Field(False, alias="unpaidFees")
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ============== 预订 Schemas ==============

class ReservationCreate(BaseModel):
    client_id: int
    room_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    remarks: Optional[str] = Field(None, max_length=REMARKS_MAX_LENGTH)


class ReservationUpdate(BaseModel):
    client_id: Optional[int] = None
    room_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    remarks: Optional[str] = Field(None, max_length=REMARKS_MAX_LENGTH)
    # 客户端上次读取的版本号，不一致时拒绝修改
    version: Optional[int] = None


class ReservationResponse(BaseModel):
    id: int
    client_id: int
    room_id: int
    start_date: date
    end_date: date
    status: ReservationStatus
    nights: int
    price_per_night: Optional[Decimal]
    total_amount: Decimal
    remarks: Optional[str]
    created_at: datetime
    updated_at: datetime
    version: int
    # 响应时从外部服务实时补全，不持久化
    client_name: Optional[str] = None
    room_number: Optional[str] = None
    room_type: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ReservationReport(BaseModel):
    total_reservations: int
    current_occupancy: int
    upcoming_reservations: int
    cancelled_reservations: int
    current_occupancy_list: List[ReservationResponse] = []
    upcoming_reservations_list: List[ReservationResponse] = []
    generated_at: datetime


class ErrorResponse(BaseModel):
    """统一错误响应"""
    http_status: int
    message: str
    error_code: str
    timestamp: datetime = Field(default_factory=datetime.now)
    details: Dict[str, Any] = {}
