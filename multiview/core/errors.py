"""Error kinds surfaced by the multiview studio.

Control-flow interaction:
    - `ValidationError` is raised by `StudioSession` / the orchestrator before a
      run starts and by image intake; it never mutates quota or results.
    - `AnalysisError` is raised by the describe adapter operation.
    - `GenerationError` is raised by the generate-view adapter operation.

The orchestrator recovers all three at its boundary and turns them into an
`error` run event; presentation adapters only ever see messages.
"""


class MultiviewError(Exception):
    """Base class for user-facing studio errors.

    Attributes:
        message: Text suitable for display in an error banner.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MultiviewError):
    """Request rejected before any state change (no image, no credits, busy)."""


class AnalysisError(MultiviewError):
    """The describe call produced no usable description."""


class GenerationError(MultiviewError):
    """A generate-view call produced no image."""
