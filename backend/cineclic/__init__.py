"""CineClic cinema booking backend."""
