from .db import BookingFilter, HotelStore
from .models import Booking, Insight

__all__ = ["Booking", "BookingFilter", "HotelStore", "Insight"]
