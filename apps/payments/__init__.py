"""Payments app package.

Payment attempts for bookings and deposits, the signed provider webhook,
and the handler that turns provider events into booking confirmations,
failures and refunds exactly once.
"""
