"""
Room model owning the seat layout document.

The layout is a JSON document (see services.seat_layout) and is the only
shared mutable resource in the booking core. It is always rewritten as a
whole inside the room's lock; never assign into it in place, since the ORM
only notices a new object.
"""

from sqlalchemy import Column, Integer, String, JSON
from sqlalchemy.orm import relationship

from cineclic.db.base import Base, TimestampMixin


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=True)
    layout = Column(JSON, nullable=False)

    screenings = relationship("Screening", back_populates="room")

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name={self.name})>"
