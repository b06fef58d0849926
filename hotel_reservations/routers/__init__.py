# API Routers
from hotel_reservations.routers import reservations, rooms, clients

__all__ = ['reservations', 'rooms', 'clients']
