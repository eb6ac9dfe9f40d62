from __future__ import annotations


class CollectionRunnerError(Exception):
    """Base class for every error raised by the control plane."""


class ConfigReadError(CollectionRunnerError):
    """The persisted runtime config could not be read; defaults apply."""


class ResolutionError(CollectionRunnerError):
    """A collection or environment reference could not be materialized."""

    def __init__(self, message: str, kind: str = "", ref: str = ""):
        super().__init__(message)
        self.kind = kind
        self.ref = ref


class RemoteFetchError(ResolutionError):
    """The remote test-management API failed or returned an unusable body."""

    def __init__(self, message: str, kind: str = "", ref: str = "", status_code: int | None = None):
        super().__init__(message, kind=kind, ref=ref)
        self.status_code = status_code


class LocalReadError(ResolutionError):
    """A local collection/environment file is missing, unreadable or not JSON."""


class RunnerError(CollectionRunnerError):
    """The external collection runner could not produce a result."""


class ArtifactWriteError(CollectionRunnerError):
    """A captured response could not be written to the results directory."""


class ReportGenerationError(CollectionRunnerError):
    """The external report generator failed."""
