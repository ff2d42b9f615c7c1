"""multiview: turn one uploaded image into several generated camera views.

Package layout:
    - `llm`: configuration, Gemini transport and the describe operation.
    - `image`: edit/generate transports and the generate-view operation.
    - `prompting`: instruction and per-view prompt text.
    - `quota`: persisted credit counters gating generation runs.
    - `core`: run types, errors, orchestrator and studio session.
    - `api`: HTTP, CLI and image-intake adapters.
"""
