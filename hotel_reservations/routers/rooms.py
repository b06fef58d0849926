"""
房间查询路由 - 通过房间服务网关代理
"""
from fastapi import APIRouter, Depends, HTTPException, status
from hotel_reservations.clients.room_gateway import RoomGateway
from hotel_reservations.dependencies import get_room_gateway
from hotel_reservations.models.schemas import RoomInfo

router = APIRouter(prefix="/rooms", tags=["房间查询"])


# 对外统一使用 snake_case，camelCase 别名只用于解析房间服务报文
@router.get("/{room_id}", response_model=RoomInfo, response_model_by_alias=False)
def get_room(room_id: int, gateway: RoomGateway = Depends(get_room_gateway)):
    """获取房间信息"""
    room = gateway.fetch_room(room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    return room
