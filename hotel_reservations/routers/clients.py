"""
客户查询路由 - 通过客户服务网关代理
客户不存在时由 CLIENT_INVALID 异常处理器返回 404
"""
from fastapi import APIRouter, Depends
from hotel_reservations.clients.client_gateway import ClientGateway
from hotel_reservations.dependencies import get_client_gateway
from hotel_reservations.models.schemas import ClientInfo

router = APIRouter(prefix="/clients", tags=["客户查询"])


# 对外统一使用 snake_case，camelCase 别名只用于解析客户服务报文
@router.get("/{client_id}", response_model=ClientInfo, response_model_by_alias=False)
def get_client(client_id: int, gateway: ClientGateway = Depends(get_client_gateway)):
    """获取客户信息"""
    return gateway.fetch_client(client_id)
