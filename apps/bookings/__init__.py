"""Bookings app package.

Owns the booking lifecycle (provisional hold, confirmation, cancellation,
expiry), the booking-window and deposit rules, the waitlist, and the
inventory ledger service that is the only writer of per-night room
inventory.
"""
