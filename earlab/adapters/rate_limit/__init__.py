"""Rate limiting adapters.

Small abstraction layer so the site can run with an in-memory limiter and later
move counters to a shared store without changing the API layer.
"""
