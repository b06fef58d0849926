"""
预订异常体系
每个异常携带稳定的错误码与 HTTP 状态，由 main.py 的异常处理器统一转换为错误响应
"""
from typing import Any, Dict, Optional


class ReservationError(Exception):
    """
    预订业务异常基类

    Attributes:
        code: 错误码（如 DATES_INVALID）
        message: 可读的错误信息
        http_status: 对应的 HTTP 状态码
        details: 附加上下文（字段名、房间ID等）
    """

    http_status = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if http_status is not None:
            self.http_status = http_status
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ReservationError):
    """输入校验失败（日期、备注长度等）"""

    def __init__(self, message: str, field: Optional[str] = None, code: str = "VALIDATION_ERROR"):
        details = {"field": field} if field else {}
        super().__init__(code, message, details)
        self.field = field


class DatesInvalidError(ValidationError):
    """日期不合法"""

    def __init__(self, message: str, field: str = "start_date"):
        super().__init__(message, field=field, code="DATES_INVALID")


class ConflictError(ReservationError):
    http_status = 409


class RoomUnavailableError(ConflictError):
    """房间在请求日期内不可用"""

    def __init__(self, room_id: int, message: Optional[str] = None):
        super().__init__(
            "ROOM_UNAVAILABLE",
            message or f"Room {room_id} is not available for the requested dates",
            {"room_id": room_id},
        )
        self.room_id = room_id


class ConcurrentModificationError(ConflictError):
    """乐观锁冲突：预订已被其他请求修改"""

    def __init__(self, reservation_id: Optional[int] = None):
        super().__init__(
            "CONCURRENT_MODIFICATION",
            "The reservation was modified concurrently, reload and retry",
            {"reservation_id": reservation_id} if reservation_id is not None else {},
        )


class NotFoundError(ReservationError):
    http_status = 404


class ReservationNotFoundError(NotFoundError):
    def __init__(self, reservation_id: int):
        super().__init__(
            "RESERVATION_NOT_FOUND",
            f"Reservation {reservation_id} not found",
            {"reservation_id": reservation_id},
        )
        self.reservation_id = reservation_id


class ClientInvalidError(NotFoundError):
    """客户服务明确返回客户不存在（唯一的 fail-closed 外部调用）"""

    def __init__(self, client_id: int, message: Optional[str] = None):
        super().__init__(
            "CLIENT_INVALID",
            message or f"Client {client_id} is not valid for a reservation",
            {"client_id": client_id},
        )
        self.client_id = client_id


class BusinessRuleError(ReservationError):
    """业务规则拒绝（如客户存在未付费用）"""
    pass


class InvalidTransitionError(ReservationError):
    """当前状态不允许该生命周期操作"""

    def __init__(self, code: str, message: str, reservation_id: Optional[int] = None,
                 current_status: Optional[str] = None):
        details = {}
        if reservation_id is not None:
            details["reservation_id"] = reservation_id
        if current_status is not None:
            details["current_status"] = current_status
        super().__init__(code, message, details)
        self.current_status = current_status


class UpstreamDegraded(Exception):
    """外部服务不可用或响应异常，仅在网关内部使用，由降级策略吸收"""

    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        super().__init__(f"{service}: {reason}")
