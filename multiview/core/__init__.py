"""Core orchestration package.

Architectural role:
    Sits between the API/CLI adapters and the remote AI adapters.

Composition:
    - `run_types`: run state, snapshots, events, modes.
    - `errors`: user-facing error kinds.
    - `engine`: describe-then-generate orchestrator.
    - `session`: per-user state owner and single-run guard.

Package import itself is side-effect free.
"""
