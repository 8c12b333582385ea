from sqlalchemy import Column, Float, Integer, String, Text
from sqlalchemy.orm import relationship

from cineclic.db.base import Base, TimestampMixin


class Movie(Base, TimestampMixin):
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    rating = Column(Float, nullable=False, default=0.0)
    poster_url = Column(String(500), nullable=True)

    screenings = relationship("Screening", back_populates="movie")

    def __repr__(self) -> str:
        return f"<Movie(id={self.id}, title={self.title})>"
