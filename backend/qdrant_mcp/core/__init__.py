"""Core Layer - pure domain logic, no IO, no network, no event loop.

Invariants:
    - No module in core/ imports from services/, api/ or infrastructure/
    - All functions are pure and deterministic given their inputs
"""
