"""描述流水线（bulk / webhook）自身的异常"""


class CaptionPipelineError(Exception):
    """Base for pipeline-level errors."""

class DescriptionCountMismatchError(CaptionPipelineError):
    """Captioning returned a different number of descriptions than image URLs submitted."""

    def __init__(self, submitted: int, returned: int):
        self.submitted = submitted
        self.returned = returned
        super().__init__(f"did not receive all image descriptions: submitted={submitted} returned={returned}")

class ShopLockTimeoutError(CaptionPipelineError):
    """Another caption job for the same shop held the lock past the blocking timeout."""
