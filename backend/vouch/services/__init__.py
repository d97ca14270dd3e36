"""Services — async shell around the pure core.

Invariants:
    - Services load rows, call core/ rules, persist results, and commit
    - Services raise VouchError subclasses; routes never build error payloads
"""
