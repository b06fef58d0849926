"""
客户服务网关

客户查询明确返回 404 是系统中唯一拒绝请求的外部应答，
其他外部故障一律降级为账务正常的占位客户。
"""
import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from hotel_reservations.exceptions import ClientInvalidError, UpstreamDegraded
from hotel_reservations.models.schemas import ClientInfo, ClientHistoryPayload

logger = logging.getLogger(__name__)

SERVICE_NAME = "client-service"


class ClientGateway(Protocol):
    def fetch_client(self, client_id: int) -> ClientInfo:
        ...

    def has_good_standing(self, client_id: int) -> bool:
        ...

    def exists(self, client_id: int) -> bool:
        ...


def placeholder_client(client_id: int) -> ClientInfo:
    """账务正常的合成客户"""
    return ClientInfo(
        id=client_id,
        first_name="Client",
        last_name="Standalone",
        email=f"client{client_id}@hotel.local",
        phone="+33600000000",
        has_unpaid_fees=False,
        stay_count=0,
    )


class StandaloneClientGateway:
    """独立模式客户网关，不发起任何外部调用"""

    def fetch_client(self, client_id: int) -> ClientInfo:
        logger.info(f"[standalone] fetch client {client_id}")
        return placeholder_client(client_id)

    def has_good_standing(self, client_id: int) -> bool:
        logger.info(f"[standalone] standing check client {client_id}")
        return True

    def exists(self, client_id: int) -> bool:
        logger.info(f"[standalone] existence check client {client_id}")
        return True


class HttpClientGateway:
    """基于客户服务 REST API 的网关"""

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

    def _request(self, method: str, path: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                return client.request(method, url)
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

    def fetch_client(self, client_id: int) -> ClientInfo:
        """
        获取客户身份与账务状态

        Raises:
            ClientInvalidError: 客户服务返回 404
        """
        try:
            response = self._request("GET", f"/{client_id}")
            if response.status_code == 404:
                logger.warning(f"Client {client_id} not found in client authority")
                raise ClientInvalidError(client_id, f"Client {client_id} not found")
            if not response.is_success:
                raise UpstreamDegraded(SERVICE_NAME, f"HTTP {response.status_code}")
            try:
                return ClientInfo.model_validate(self._json(response))
            except ValueError as e:
                raise UpstreamDegraded(SERVICE_NAME, f"invalid client payload: {e}") from e
        except UpstreamDegraded as e:
            logger.warning(f"Client authority degraded, using placeholder for client {client_id}: {e}")
            return placeholder_client(client_id)

    def has_good_standing(self, client_id: int) -> bool:
        """无未付费用即为正常，故障时视为正常"""
        try:
            response = self._request("GET", f"/{client_id}/history")
            if not response.is_success:
                raise UpstreamDegraded(SERVICE_NAME, f"HTTP {response.status_code}")
            try:
                history = ClientHistoryPayload.model_validate(self._json(response))
            except ValueError as e:
                raise UpstreamDegraded(SERVICE_NAME, f"invalid history payload: {e}") from e
            return not history.unpaid_fees
        except UpstreamDegraded as e:
            logger.warning(f"Standing check degraded for client {client_id}, assuming good standing: {e}")
            return True

    def exists(self, client_id: int) -> bool:
        """存在性检查，故障时视为存在"""
        try:
            response = self._request("HEAD", f"/{client_id}")
        except UpstreamDegraded as e:
            logger.warning(f"Existence check degraded for client {client_id}, assuming it exists: {e}")
            return True
        if response.status_code == 404:
            return False
        if not response.is_success:
            logger.warning(f"Existence check for client {client_id} got HTTP {response.status_code}, assuming it exists")
        return True


def build_client_gateway(settings) -> ClientGateway:
    """按运行模式构建客户网关"""
    if settings.STANDALONE_MODE:
        return StandaloneClientGateway()
    return HttpClientGateway(
        settings.CLIENT_SERVICE_URL,
        connect_timeout=settings.CONNECT_TIMEOUT,
        read_timeout=settings.READ_TIMEOUT,
    )
