"""
数据模型模块
"""
from hotel_reservations.models.entities import Reservation, ReservationStatus

__all__ = ["Reservation", "ReservationStatus"]
