"""Domain models (Value Objects) for the data cache."""
