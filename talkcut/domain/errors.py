"""Exceptions raised across talkcut."""

from typing import Optional


class TalkcutError(Exception):
    """Base class for talkcut errors."""


class ExternalToolError(TalkcutError):
    """An external process (ffmpeg, recognizer) failed or produced unparseable output."""

    def __init__(self, tool: str, message: str, stderr: str = ""):
        self.tool = tool
        self.stderr = stderr
        detail = f"{tool}: {message}"
        if stderr:
            detail += f"\n{stderr.strip()}"
        super().__init__(detail)


class DegenerateIntervalError(TalkcutError):
    """An interval collapsed to non-positive length after clamping."""

    def __init__(self, start: float, end: float):
        self.start = start
        self.end = end
        super().__init__(f"Degenerate interval ({start}, {end})")


class PointRemovedError(TalkcutError):
    """A timeline position falls inside a span that was cut."""

    def __init__(self, t: float, nearest_boundary: Optional[float]):
        self.t = t
        self.nearest_boundary = nearest_boundary
        super().__init__(f"Time {t} was removed (nearest kept boundary: {nearest_boundary})")


class CleanupServiceError(TalkcutError):
    """The language-cleanup service failed or timed out."""


class MissingResourceError(TalkcutError):
    """A model directory or tool binary could not be found."""

    def __init__(self, resource: str, searched: Optional[list[str]] = None):
        self.resource = resource
        self.searched = list(searched or [])
        msg = f"Missing resource: {resource}"
        if self.searched:
            msg += f" (searched: {', '.join(self.searched)})"
        super().__init__(msg)


class ProgressDeliveryError(TalkcutError):
    """A progress observer raised while receiving a notification."""


class PipelineCancelledError(TalkcutError):
    """The run was cancelled between stages."""


class PipelineError(TalkcutError):
    """Terminal failure of a pipeline run, tagged with the failing stage."""

    def __init__(self, stage: Optional[str], cause: BaseException):
        self.stage = stage
        self.cause = cause
        where = stage or "pipeline"
        super().__init__(f"{where} failed: {cause}")
