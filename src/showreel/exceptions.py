"""Exception hierarchy for the scraping pipeline."""


class ShowreelError(Exception):
    """Base class for all pipeline errors."""


class ScraperError(ShowreelError):
    """A source adapter failed in a way worth retrying."""

    def __init__(self, cinema_id: str, message: str) -> None:
        self.cinema_id = cinema_id
        super().__init__(f"[{cinema_id}] {message}")


class ScraperUnhealthyError(ScraperError):
    """Health check failed before scraping started."""

    def __init__(self, cinema_id: str) -> None:
        super().__init__(cinema_id, "health check failed")


class ChallengeBlockedError(ScraperError):
    """The source served an anti-bot challenge page instead of content."""


class DocumentFetchError(ShowreelError):
    """A calendar document could not be discovered or downloaded."""


class PipelineBlockedError(ShowreelError):
    """Raised by callers that treat a blocked diff as fatal."""

    def __init__(self, cinema_id: str, reason: str) -> None:
        self.cinema_id = cinema_id
        self.reason = reason
        super().__init__(f"Pipeline blocked for {cinema_id}: {reason}")
