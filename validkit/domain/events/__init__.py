"""Domain Event definitions.

Represents significant occurrences during a resilient call that other
parts of the system might react to (logging, metrics, tests).
"""
