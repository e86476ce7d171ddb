"""Game domain services: the tap session state machine, timers, tap-rate
scoring, records and the live session registry.

Transport concerns (HTTP routes, socket handlers) import from here and stay
out of the core game mechanics.
"""
