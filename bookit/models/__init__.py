# Import all models so that SQLAlchemy registers them for metadata.create_all
from bookit.models.experience import Experience, ExperienceCategory
from bookit.models.slot import TimeSlot
from bookit.models.promo_code import DiscountType, PromoCode
from bookit.models.booking import Booking, BookingStatus, PaymentStatus

__all__ = [
    "Experience",
    "ExperienceCategory",
    "TimeSlot",
    "DiscountType",
    "PromoCode",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
]
