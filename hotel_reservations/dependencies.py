"""
FastAPI 依赖注入：外部服务网关与预订服务
网关按配置的运行模式构建一次，测试中可通过 dependency_overrides 替换
"""
from functools import lru_cache
from fastapi import Depends
from sqlalchemy.orm import Session
from hotel_reservations.clients.client_gateway import ClientGateway, build_client_gateway
from hotel_reservations.clients.room_gateway import RoomGateway, build_room_gateway
from hotel_reservations.config import settings
from hotel_reservations.database import get_db
from hotel_reservations.services.reservation_service import ReservationService


@lru_cache
def get_room_gateway() -> RoomGateway:
    return build_room_gateway(settings)


@lru_cache
def get_client_gateway() -> ClientGateway:
    return build_client_gateway(settings)


def get_reservation_service(
    db: Session = Depends(get_db),
    room_gateway: RoomGateway = Depends(get_room_gateway),
    client_gateway: ClientGateway = Depends(get_client_gateway),
) -> ReservationService:
    return ReservationService(db, room_gateway, client_gateway)
