"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the library to the outside world (HTTP, configuration files,
logging) and hosts the resilience services.
"""
