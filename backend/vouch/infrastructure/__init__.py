"""Infrastructure Layer — database, logging, locks and outbound clients.

Invariants:
    - Infrastructure never imports domain rules from core/ (errors and types only)
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""
