"""
Shared kernel for the booking engine.

Domain building blocks, error taxonomy and value objects (``domain``),
unit of work, message bus and transaction retry (``application``), and
the token-bucket rate limiter with its DRF throttles (``infrastructure``).
"""
