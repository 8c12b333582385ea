"""
Screening model: an immutable scheduling fact.

start_time anchors the payment window and the cancellation cutoff.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from cineclic.db.base import Base, TimestampMixin


class Screening(Base, TimestampMixin):
    __tablename__ = "screenings"

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    movie = relationship("Movie", back_populates="screenings")
    room = relationship("Room", back_populates="screenings")
    bookings = relationship("Booking", back_populates="screening")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_screening_times"),
        CheckConstraint("price >= 0", name="check_screening_price_non_negative"),
        # The deadline sweep scans screenings by start time
        Index("ix_screenings_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Screening(id={self.id}, movie={self.movie_id}, room={self.room_id}, start={self.start_time})>"
