"""
Tests for hotel_reservations/services/reservation_service.py
Covers: create (pricing, client gate, conflicts, degraded mode), read, list,
        update, lifecycle delegation, report
"""
import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import call

from hotel_reservations.clients.client_gateway import placeholder_client
from hotel_reservations.clients.room_gateway import RoomStatus
from hotel_reservations.exceptions import (
    BusinessRuleError, ClientInvalidError, ConcurrentModificationError,
    DatesInvalidError, InvalidTransitionError, ReservationNotFoundError,
    RoomUnavailableError,
)
from hotel_reservations.models.entities import ReservationStatus
from hotel_reservations.models.schemas import ReservationCreate, ReservationUpdate, RoomInfo


def _create(service, **kwargs):
    data = {
        "client_id": 1,
        "room_id": 101,
        "start_date": date(2026, 1, 25),
        "end_date": date(2026, 1, 28),
    }
    data.update(kwargs)
    return service.create_reservation(ReservationCreate(**data))


class TestCreateReservation:
    """创建预订测试"""

    def test_create_scenario(self, service):
        """client=1, room=101, 3 晚 × 120.00 = 360.00"""
        result = _create(service)

        assert result.id is not None
        assert result.status == ReservationStatus.PENDING
        assert result.nights == 3
        assert result.price_per_night == Decimal("120.00")
        assert result.total_amount == Decimal("360.00")
        assert result.version == 1

    def test_create_enriches_response(self, service):
        result = _create(service)

        assert result.client_name == "Client Standalone"
        assert result.room_number == "CH-101"
        assert result.room_type == "DOUBLE"

    def test_overlapping_create_rejected(self, service):
        """同一房间日期重叠 -> ROOM_UNAVAILABLE"""
        _create(service)

        with pytest.raises(RoomUnavailableError) as exc_info:
            _create(service, start_date=date(2026, 1, 27), end_date=date(2026, 1, 30))

        assert exc_info.value.code == "ROOM_UNAVAILABLE"
        assert exc_info.value.room_id == 101

    def test_touching_ranges_conflict(self, service):
        """首尾相接的日期也视为冲突"""
        _create(service)

        with pytest.raises(RoomUnavailableError):
            _create(service, start_date=date(2026, 1, 28), end_date=date(2026, 1, 30))

    def test_other_room_not_affected(self, service):
        _create(service)
        result = _create(service, room_id=102)
        assert result.room_id == 102

    def test_create_after_cancel_allowed(self, service):
        first = _create(service)
        service.cancel_reservation(first.id)

        second = _create(service)
        assert second.id != first.id

    def test_end_before_start_rejected(self, service):
        with pytest.raises(DatesInvalidError) as exc_info:
            _create(service, start_date=date(2026, 1, 28), end_date=date(2026, 1, 25))
        assert exc_info.value.code == "DATES_INVALID"

    def test_zero_night_rejected(self, service):
        with pytest.raises(DatesInvalidError):
            _create(service, start_date=date(2026, 1, 25), end_date=date(2026, 1, 25))

    def test_start_in_past_rejected(self, service):
        with pytest.raises(DatesInvalidError):
            _create(service, start_date=date(2025, 12, 31), end_date=date(2026, 1, 2))

    def test_start_today_allowed(self, service):
        result = _create(service, start_date=date(2026, 1, 1), end_date=date(2026, 1, 2))
        assert result.nights == 1

    def test_missing_dates_rejected(self, service):
        with pytest.raises(DatesInvalidError):
            _create(service, start_date=None)

    def test_client_with_unpaid_fees_rejected(self, service, client_gateway, db_session):
        client = placeholder_client(1).model_copy(update={"has_unpaid_fees": True})
        client_gateway.fetch_client.return_value = client

        with pytest.raises(BusinessRuleError) as exc_info:
            _create(service)

        assert exc_info.value.code == "CLIENT_HAS_UNPAID_FEES"
        assert service.get_reservations() == []

    def test_financial_gate_uses_single_fetch(self, service, client_gateway):
        _create(service)

        client_gateway.fetch_client.assert_called_once_with(1)
        client_gateway.has_good_standing.assert_not_called()

    def test_unknown_client_propagates(self, service, client_gateway):
        client_gateway.fetch_client.side_effect = ClientInvalidError(1)

        with pytest.raises(ClientInvalidError) as exc_info:
            _create(service)
        assert exc_info.value.code == "CLIENT_INVALID"

    def test_price_from_room_authority(self, service, room_gateway):
        room_gateway.fetch_room.return_value = RoomInfo(
            id=101, number="101", type="SUITE", price_per_night=Decimal("250.00")
        )

        result = _create(service, price_per_night=Decimal("80.00"))

        assert result.price_per_night == Decimal("250.00")
        assert result.total_amount == Decimal("750.00")
        assert result.room_type == "SUITE"

    def test_price_from_caller_when_room_not_found(self, service, room_gateway):
        room_gateway.fetch_room.return_value = None

        result = _create(service, price_per_night=Decimal("80.00"))

        assert result.price_per_night == Decimal("80.00")
        assert result.total_amount == Decimal("240.00")
        assert result.room_number is None

    def test_default_price_when_nothing_known(self, service, room_gateway):
        room_gateway.fetch_room.return_value = RoomInfo(id=101, number="101")

        result = _create(service)

        assert result.price_per_night == Decimal("100.00")
        assert result.total_amount == Decimal("300.00")

    def test_remote_unavailable_blocks_create(self, service, room_gateway):
        room_gateway.check_availability.return_value = False

        with pytest.raises(RoomUnavailableError):
            _create(service)

    def test_local_conflict_skips_remote_check(self, service, room_gateway):
        _create(service)
        room_gateway.check_availability.reset_mock()

        with pytest.raises(RoomUnavailableError):
            _create(service, start_date=date(2026, 1, 26), end_date=date(2026, 1, 27))
        room_gateway.check_availability.assert_not_called()


class TestReadReservations:
    """查询测试"""

    def test_round_trip(self, service):
        created = _create(service, remarks="late arrival")

        loaded = service.get_reservation(created.id)

        assert loaded.client_id == created.client_id
        assert loaded.room_id == created.room_id
        assert loaded.start_date == created.start_date
        assert loaded.end_date == created.end_date
        assert loaded.total_amount == loaded.price_per_night * loaded.nights
        assert loaded.remarks == "late arrival"

    def test_not_found(self, service):
        with pytest.raises(ReservationNotFoundError) as exc_info:
            service.get_reservation(999)
        assert exc_info.value.code == "RESERVATION_NOT_FOUND"

    def test_to_response_tolerates_unknown_client(self, service, client_gateway):
        created = _create(service)
        client_gateway.fetch_client.side_effect = ClientInvalidError(1)

        response = service.to_response(service.get_reservation(created.id))

        assert response.client_name is None
        assert response.room_number == "CH-101"

    def test_list_unfiltered_newest_first(self, service):
        first = _create(service, room_id=1)
        second = _create(service, room_id=2)

        ids = [r.id for r in service.get_reservations()]
        assert ids == [second.id, first.id]

    def test_list_by_status(self, service):
        pending = _create(service, room_id=1, start_date=date(2026, 2, 10), end_date=date(2026, 2, 12))
        early = _create(service, room_id=2, start_date=date(2026, 2, 1), end_date=date(2026, 2, 3))
        confirmed = _create(service, room_id=3)
        service.confirm_reservation(confirmed.id)

        result = service.get_reservations(status=ReservationStatus.PENDING)

        assert [r.id for r in result] == [early.id, pending.id]

    def test_list_by_client(self, service):
        mine_early = _create(service, client_id=7, room_id=1, start_date=date(2026, 2, 1), end_date=date(2026, 2, 2))
        mine_late = _create(service, client_id=7, room_id=2, start_date=date(2026, 3, 1), end_date=date(2026, 3, 2))
        _create(service, client_id=8, room_id=3)

        result = service.get_reservations(client_id=7)

        assert [r.id for r in result] == [mine_late.id, mine_early.id]


class TestUpdateReservation:
    """修改预订测试"""

    def test_update_dates_recomputes_total(self, service):
        created = _create(service)

        updated = service.update_reservation(
            created.id, ReservationUpdate(end_date=date(2026, 1, 30))
        )

        assert updated.nights == 5
        assert updated.total_amount == Decimal("600.00")
        assert updated.version == 2

    def test_update_price_recomputes_total(self, service):
        created = _create(service)

        updated = service.update_reservation(
            created.id, ReservationUpdate(price_per_night=Decimal("150.00"))
        )

        assert updated.total_amount == Decimal("450.00")

    def test_update_does_not_conflict_with_itself(self, service):
        created = _create(service)

        updated = service.update_reservation(
            created.id,
            ReservationUpdate(start_date=date(2026, 1, 26), end_date=date(2026, 1, 29)),
        )

        assert updated.start_date == date(2026, 1, 26)

    def test_update_into_conflict_rejected(self, service):
        _create(service)
        other = _create(service, start_date=date(2026, 2, 1), end_date=date(2026, 2, 3))

        with pytest.raises(RoomUnavailableError):
            service.update_reservation(other.id, ReservationUpdate(start_date=date(2026, 1, 27)))

    def test_room_change_checked_against_new_room(self, service):
        _create(service, room_id=202)
        other = _create(service)

        with pytest.raises(RoomUnavailableError) as exc_info:
            service.update_reservation(other.id, ReservationUpdate(room_id=202))
        assert exc_info.value.room_id == 202

    def test_remarks_only_skips_availability(self, service, room_gateway):
        created = _create(service)
        room_gateway.check_availability.reset_mock()

        updated = service.update_reservation(created.id, ReservationUpdate(remarks="sea view"))

        assert updated.remarks == "sea view"
        room_gateway.check_availability.assert_not_called()

    def test_update_invalid_dates(self, service):
        created = _create(service)

        with pytest.raises(DatesInvalidError):
            service.update_reservation(created.id, ReservationUpdate(end_date=date(2026, 1, 20)))

    def test_update_checked_in_rejected(self, service):
        created = _create(service)
        service.confirm_reservation(created.id)
        service.check_in(created.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.update_reservation(created.id, ReservationUpdate(remarks="x"))
        assert exc_info.value.code == "MODIFICATION_IMPOSSIBLE"

    def test_update_with_stale_version_rejected(self, service):
        created = _create(service)
        service.confirm_reservation(created.id)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            service.update_reservation(created.id, ReservationUpdate(remarks="x", version=1))
        assert exc_info.value.code == "CONCURRENT_MODIFICATION"

    def test_update_missing_reservation(self, service):
        with pytest.raises(ReservationNotFoundError):
            service.update_reservation(42, ReservationUpdate(remarks="x"))


class TestLifecycleUseCases:
    """生命周期用例测试"""

    def test_full_stay_pushes_room_statuses(self, service, room_gateway):
        created = _create(service)

        assert service.confirm_reservation(created.id).status == ReservationStatus.CONFIRMED
        assert service.check_in(created.id).status == ReservationStatus.CHECKED_IN
        assert service.check_out(created.id).status == ReservationStatus.CHECKED_OUT

        assert room_gateway.push_status.call_args_list == [
            call(101, RoomStatus.RESERVED),
            call(101, RoomStatus.OCCUPIED),
            call(101, RoomStatus.FREE),
        ]

    def test_check_in_before_confirm(self, service, room_gateway):
        created = _create(service)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.check_in(created.id)

        assert exc_info.value.code == "CHECKIN_IMPOSSIBLE"
        room_gateway.push_status.assert_not_called()

    def test_cancel_checked_out(self, service):
        created = _create(service)
        service.confirm_reservation(created.id)
        service.check_in(created.id)
        service.check_out(created.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.cancel_reservation(created.id)
        assert exc_info.value.code == "CANCEL_IMPOSSIBLE"

    def test_cancel_frees_room(self, service, room_gateway):
        created = _create(service)

        cancelled = service.cancel_reservation(created.id)

        assert cancelled.status == ReservationStatus.CANCELLED
        room_gateway.push_status.assert_called_once_with(101, RoomStatus.FREE)

    def test_transition_on_missing_reservation(self, service):
        with pytest.raises(ReservationNotFoundError):
            service.confirm_reservation(404)


class TestDegradedMode:
    """外部服务全部不可用时的降级行为"""

    def test_create_succeeds_with_both_authorities_down(self, db_session):
        import httpx
        from hotel_reservations.clients.client_gateway import HttpClientGateway
        from hotel_reservations.clients.room_gateway import HttpRoomGateway
        from hotel_reservations.services.reservation_service import ReservationService

        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = httpx.MockTransport(unreachable)
        service = ReservationService(
            db_session,
            HttpRoomGateway("http://rooms.test/api/rooms", transport=transport),
            HttpClientGateway("http://clients.test/api/clients", transport=transport),
            today=lambda: date(2026, 1, 1),
        )

        created = _create(service)
        assert created.status == ReservationStatus.PENDING
        assert created.total_amount == Decimal("360.00")

        # 本地冲突仍然生效
        with pytest.raises(RoomUnavailableError):
            _create(service, start_date=date(2026, 1, 26), end_date=date(2026, 1, 27))

        # 状态推送失败不影响已提交的转换
        confirmed = service.confirm_reservation(created.id)
        assert confirmed.status == ReservationStatus.CONFIRMED


class TestReport:
    """报表测试"""

    def test_report_counts(self, service, make_reservation):
        make_reservation(room_id=1, status=ReservationStatus.CHECKED_IN,
                         start_date=date(2025, 12, 30), end_date=date(2026, 1, 3))
        later = make_reservation(room_id=2, status=ReservationStatus.PENDING,
                                 start_date=date(2026, 3, 1), end_date=date(2026, 3, 4))
        sooner = make_reservation(room_id=3, status=ReservationStatus.CONFIRMED,
                                  start_date=date(2026, 2, 1), end_date=date(2026, 2, 4))
        make_reservation(room_id=4, status=ReservationStatus.CONFIRMED,
                         start_date=date(2026, 1, 1), end_date=date(2026, 1, 4))
        make_reservation(room_id=5, status=ReservationStatus.CANCELLED)
        make_reservation(room_id=6, status=ReservationStatus.CHECKED_OUT)

        report = service.generate_report()

        assert report.total_reservations == 6
        assert report.current_occupancy == 1
        # 今天开始的预订不算"即将到来"
        assert report.upcoming_reservations == 2
        assert [r.id for r in report.upcoming_reservations_list] == [sooner.id, later.id]
        assert report.cancelled_reservations == 1
        assert report.generated_at is not None

    def test_empty_report(self, service):
        report = service.generate_report()

        assert report.total_reservations == 0
        assert report.current_occupancy_list == []
