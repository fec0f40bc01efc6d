"""Domain layer: value objects, errors, events and ports. No I/O here."""
