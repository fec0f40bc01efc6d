"""Domain models (value objects, errors, operation tags)."""
