"""
房间服务网关

读取仅作参考：任何外部故障都降级为占位房间或"可用"。
状态推送是尽力而为的通知，从不抛出异常。
"""
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import httpx

from hotel_reservations.exceptions import UpstreamDegraded
from hotel_reservations.models.schemas import RoomInfo, AvailabilityPayload

logger = logging.getLogger(__name__)

SERVICE_NAME = "room-service"


class RoomStatus(str, Enum):
    """推送给房间服务的房间状态"""
    RESERVED = "RESERVED"
    OCCUPIED = "OCCUPIED"
    FREE = "FREE"


class RoomGateway(Protocol):
    def fetch_room(self, room_id: int) -> Optional[RoomInfo]:
        ...

    def check_availability(self, room_id: int, start_date: date, end_date: date) -> bool:
        ...

    def push_status(self, room_id: int, new_status: RoomStatus) -> bool:
        ...


def placeholder_room(room_id: int) -> RoomInfo:
    """房间服务不可达或独立模式下使用的合成房间"""
    return RoomInfo(
        id=room_id,
        number=f"CH-{room_id}",
        type="DOUBLE",
        price_per_night=Decimal("120.00"),
        status=RoomStatus.FREE.value,
        available=True,
        capacity=2,
    )


class StandaloneRoomGateway:
    """独立模式房间网关，不发起任何外部调用"""

    def fetch_room(self, room_id: int) -> Optional[RoomInfo]:
        logger.info(f"[standalone] fetch room {room_id}")
        return placeholder_room(room_id)

    def check_availability(self, room_id: int, start_date: date, end_date: date) -> bool:
        logger.info(f"[standalone] availability room {room_id} {start_date} -> {end_date}")
        return True

    def push_status(self, room_id: int, new_status: RoomStatus) -> bool:
        logger.info(f"[standalone] push room {room_id} status {RoomStatus(new_status).value}")
        return True


class HttpRoomGateway:
    """基于房间服务 REST API 的网关"""

    def __init__(
        self,
        base_url: str,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._transport = transport

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                return client.request(method, url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamDegraded(SERVICE_NAME, f"{method} {url} failed: {e!r}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamDegraded(SERVICE_NAME, "malformed JSON payload") from e
        if not isinstance(payload, dict):
            raise UpstreamDegraded(SERVICE_NAME, "unexpected payload shape")
        return payload

    def fetch_room(self, room_id: int) -> Optional[RoomInfo]:
        """
        获取房间信息

        Returns:
            RoomInfo；房间服务返回 404 时为 None，其他故障返回占位房间
        """
        try:
            response = self._request("GET", f"/{room_id}")
            if response.status_code == 404:
                logger.warning(f"Room {room_id} not found in room authority")
                return None
            if not response.is_success:
                raise UpstreamDegraded(SERVICE_NAME, f"HTTP {response.status_code}")
            try:
                return RoomInfo.model_validate(self._json(response))
            except ValueError as e:
                raise UpstreamDegraded(SERVICE_NAME, f"invalid room payload: {e}") from e
        except UpstreamDegraded as e:
            logger.warning(f"Room authority degraded, using placeholder for room {room_id}: {e}")
            return placeholder_room(room_id)

    def check_availability(self, room_id: int, start_date: date, end_date: date) -> bool:
        """查询房间在日期范围内是否空闲，故障时视为可用"""
        try:
            response = self._request(
                "GET",
                f"/{room_id}/availability",
                params={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
            )
            if not response.is_success:
                raise UpstreamDegraded(SERVICE_NAME, f"HTTP {response.status_code}")
            try:
                return AvailabilityPayload.model_validate(self._json(response)).available
            except ValueError as e:
                raise UpstreamDegraded(SERVICE_NAME, f"invalid availability payload: {e}") from e
        except UpstreamDegraded as e:
            logger.warning(f"Availability check degraded for room {room_id}, assuming available: {e}")
            return True

    def push_status(self, room_id: int, new_status: RoomStatus) -> bool:
        """推送房间状态（尽力而为，从不抛出异常）"""
        status_value = RoomStatus(new_status).value
        try:
            response = self._request("PUT", f"/{room_id}/status", json={"status": status_value})
        except UpstreamDegraded as e:
            logger.warning(f"Room status push {room_id} -> {status_value} failed: {e}")
            return False
        if response.is_success:
            logger.info(f"Room {room_id} status pushed: {status_value}")
            return True
        logger.warning(f"Room status push {room_id} -> {status_value} rejected: HTTP {response.status_code}")
        return False


def build_room_gateway(settings) -> RoomGateway:
    """按运行模式构建房间网关"""
    if settings.STANDALONE_MODE:
        return StandaloneRoomGateway()
    return HttpRoomGateway(
        settings.ROOM_SERVICE_URL,
        connect_timeout=settings.CONNECT_TIMEOUT,
        read_timeout=settings.READ_TIMEOUT,
    )
