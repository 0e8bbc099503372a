"""Battle-room domain services: rooms, voting, ranking and fan-out.

This package holds the in-memory room state machine. Socket handlers and
HTTP routes call into it; only the dispatcher talks back to the transport.
"""
