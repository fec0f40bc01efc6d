"""Core application services.

Wires configuration, transport and the resilience executor into the
client callers use.
"""
