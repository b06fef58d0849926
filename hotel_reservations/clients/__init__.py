"""
外部服务网关
每个外部系统一个网关，集成模式走 HTTP，独立模式返回本地合成数据
"""
from hotel_reservations.clients.room_gateway import (
    RoomGateway, RoomStatus, HttpRoomGateway, StandaloneRoomGateway, build_room_gateway
)
from hotel_reservations.clients.client_gateway import (
    ClientGateway, HttpClientGateway, StandaloneClientGateway, build_client_gateway
)

__all__ = [
    "RoomGateway", "RoomStatus", "HttpRoomGateway", "StandaloneRoomGateway", "build_room_gateway",
    "ClientGateway", "HttpClientGateway", "StandaloneClientGateway", "build_client_gateway",
]
