"""Core Layer — pure domain rules for references, rankings and memberships.

Invariants:
    - No IO, no async, no SQLAlchemy imports
    - Every rule takes plain values (or frozen dataclasses) and returns plain values

Design Decisions:
    - Functional core / imperative shell: services/ loads rows, core/ decides (ADR: testability)
"""
