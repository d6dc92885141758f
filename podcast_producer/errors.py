"""Exception hierarchy for the podcast pipeline.

Every failure reaches the user as a single message; the class says which
stage produced it.
"""


class PodcastError(Exception):
    """Base class for all pipeline errors."""


class InputMissingError(PodcastError):
    """A required credential or upstream input is absent."""


class ProviderError(PodcastError):
    """An external service answered with a non-success response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ContentShapeError(PodcastError):
    """A successful response did not carry the expected payload."""


class AudioContentMissingError(ContentShapeError):
    """The synthesis service returned no audio content."""


class MeasurementError(PodcastError):
    """Playback duration of an audio artifact could not be determined."""


class MeasurementTimeoutError(MeasurementError):
    """Duration measurement did not finish within the bounded wait."""


class PreconditionError(PodcastError):
    """An operation was invoked without its required prior state."""


class IncompleteTimingError(PreconditionError):
    """Some dialogue lines have no usable recorded duration."""

    def __init__(self, line_numbers: list[int]):
        self.line_numbers = list(line_numbers)
        numbers = ", ".join(str(n) for n in self.line_numbers)
        super().__init__(
            f"Audio durations are missing or unknown for line(s) {numbers}. "
            "Synthesize the podcast audio first to get exact timestamps."
        )


class PackagingError(PodcastError):
    """Bundling audio artifacts into an archive failed."""
