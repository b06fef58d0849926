"""
预订管理路由
业务异常由 main.py 中注册的异常处理器统一转换为错误响应
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from hotel_reservations.dependencies import get_reservation_service
from hotel_reservations.models.entities import ReservationStatus
from hotel_reservations.models.schemas import (
    ReservationCreate, ReservationUpdate, ReservationResponse, ReservationReport
)
from hotel_reservations.services.reservation_service import ReservationService

router = APIRouter(prefix="/reservations", tags=["预订管理"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service)
):
    """创建预订"""
    return service.create_reservation(data)


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    status: Optional[ReservationStatus] = None,
    client_id: Optional[int] = None,
    service: ReservationService = Depends(get_reservation_service)
):
    """获取预订列表"""
    reservations = service.get_reservations(status=status, client_id=client_id)
    return [service.to_response(r, enrich=False) for r in reservations]


@router.get("/report", response_model=ReservationReport)
def get_report(service: ReservationService = Depends(get_reservation_service)):
    """预订报表"""
    return service.generate_report()


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    """获取预订详情"""
    return service.to_response(service.get_reservation(reservation_id))


@router.put("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(
    reservation_id: int,
    data: ReservationUpdate,
    service: ReservationService = Depends(get_reservation_service)
):
    """修改预订"""
    return service.to_response(service.update_reservation(reservation_id, data))


@router.delete("/{reservation_id}", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    """取消预订"""
    return service.to_response(service.cancel_reservation(reservation_id))


@router.post("/{reservation_id}/confirm", response_model=ReservationResponse)
def confirm_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    """确认预订"""
    return service.to_response(service.confirm_reservation(reservation_id))


@router.post("/{reservation_id}/check-in", response_model=ReservationResponse)
def check_in(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    """办理入住"""
    return service.to_response(service.check_in(reservation_id))


@router.post("/{reservation_id}/check-out", response_model=ReservationResponse)
def check_out(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service)
):
    """办理退房"""
    return service.to_response(service.check_out(reservation_id))
