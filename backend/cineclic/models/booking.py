"""
Booking model: one row per reservation of seats for a screening.

Key design decisions:
- Seats are copied by value as [{"row": ..., "column": ...}], not referenced
  into the room layout
- Status moves ACTIVA -> CANCELADA only; rows are never deleted
- Folio is the human-readable reference and is unique across the ledger
"""

from sqlalchemy import Column, DateTime, Integer, String, ForeignKey, JSON, CheckConstraint, Index
from sqlalchemy.orm import relationship

from cineclic.db.base import Base, TimestampMixin

STATUS_ACTIVE = "ACTIVA"
STATUS_CANCELLED = "CANCELADA"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    folio = Column(String(9), unique=True, index=True, nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_ACTIVE)
    seats = Column(JSON, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    screening_id = Column(Integer, ForeignKey("screenings.id"), nullable=False, index=True)

    user = relationship("User", back_populates="bookings")
    screening = relationship("Screening", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("status IN ('ACTIVA', 'CANCELADA')", name="check_booking_status"),
        # Sweep query: active bookings per screening
        Index("ix_bookings_status_screening", "status", "screening_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, folio={self.folio}, screening={self.screening_id}, status={self.status})>"
