"""
Pytest 配置和共享 fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STANDALONE_MODE", "true")

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hotel_reservations.clients.client_gateway import StandaloneClientGateway
from hotel_reservations.clients.room_gateway import StandaloneRoomGateway
from hotel_reservations.database import Base, get_db
from hotel_reservations.dependencies import get_client_gateway, get_room_gateway
from hotel_reservations.models import entities  # noqa
from hotel_reservations.models.entities import Reservation, ReservationStatus
from hotel_reservations.services.reservation_service import ReservationService
from hotel_reservations.main import app

# 服务层测试使用的"今天"
TODAY = date(2026, 1, 1)


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


# ============== 网关 Fixtures ==============

@pytest.fixture
def room_gateway():
    """记录调用的独立模式房间网关"""
    return MagicMock(wraps=StandaloneRoomGateway())


@pytest.fixture
def client_gateway():
    """记录调用的独立模式客户网关"""
    return MagicMock(wraps=StandaloneClientGateway())


@pytest.fixture
def service(db_session, room_gateway, client_gateway):
    """日期固定为 TODAY 的预订服务"""
    return ReservationService(db_session, room_gateway, client_gateway, today=lambda: TODAY)


@pytest.fixture
def make_reservation(db_session):
    """直接写库创建预订（绕过业务校验）"""
    def _make(**kwargs):
        defaults = {
            "client_id": 1,
            "room_id": 101,
            "start_date": date(2026, 1, 25),
            "end_date": date(2026, 1, 28),
            "status": ReservationStatus.PENDING,
            "price_per_night": Decimal("120.00"),
        }
        defaults.update(kwargs)
        reservation = Reservation(**defaults)
        reservation.recalculate_total()
        db_session.add(reservation)
        db_session.commit()
        db_session.refresh(reservation)
        return reservation
    return _make


@pytest.fixture(scope="function")
def client(db_session, room_gateway, client_gateway):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_room_gateway] = lambda: room_gateway
    app.dependency_overrides[get_client_gateway] = lambda: client_gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
