from cineclic.models.user import User
from cineclic.models.movie import Movie
from cineclic.models.room import Room
from cineclic.models.screening import Screening
from cineclic.models.booking import Booking

__all__ = ["User", "Movie", "Room", "Screening", "Booking"]
