"""Rooms app package.

Room-type catalog, per-night inventory records and the special-day
calendar (blocked nights and special rates) consulted by pricing and
availability.
"""
