"""Image generation adapter package.

Scope:
    Provides the two view-rendering strategies (edit the source image, or
    generate from text only) and the dispatch service used by the orchestrator.

Non-goals:
    - No retry or caching of generated images.
    - No temporary-file creation.
"""
