"""Exception types raised by the KTP OCR pipeline."""


class KtpOcrError(Exception):
    """Base exception for pipeline errors."""


class InvalidImageError(KtpOcrError, ValueError):
    """Raised when an input image cannot be preprocessed.

    This is a caller error: empty images, images with fewer than three
    color channels, or data that could not be decoded as an image.
    """


class RecognitionFailedError(KtpOcrError):
    """Raised when the text-recognition engine did not produce usable text.

    Wraps whatever the engine raised (process errors, timeouts,
    cancellation) so callers handle a single error type.

    Args:
        message: Human-readable description.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
