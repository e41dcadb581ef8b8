"""Exception types raised by the feedback collector."""


class MediaPipelineError(RuntimeError):
    """A media fetch, download, or upload step failed."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"{step} failed: {reason}")
        self.step = step
        self.reason = reason


class StorageUploadError(RuntimeError):
    """Durable storage rejected an upload."""
