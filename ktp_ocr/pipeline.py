"""End-to-end KTP extraction pipeline.

Runs preprocessing, hands the binarized image to a recognition engine
and parses the returned text into an :class:`ExtractedDocument`.
"""

import io
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import numpy as np
from PIL import Image, UnidentifiedImageError

from ktp_ocr.errors import InvalidImageError, RecognitionFailedError
from ktp_ocr.extraction.document import ExtractedDocument
from ktp_ocr.extraction.field_extractor import FieldExtractor
from ktp_ocr.preprocessing.pipeline import ImagePreprocessor, QualityMetrics
from ktp_ocr.utils.config import AppConfig
from ktp_ocr.utils.logger import get_logger

logger = get_logger(__name__)

Recognizer = Callable[[np.ndarray], str]


class RecognitionEngine(Protocol):
    """An engine that hands out a ``recognize`` callable for one scope."""

    def session(self) -> AbstractContextManager[Recognizer]: ...


@dataclass
class PipelineResult:
    """Output of one pipeline run.

    ``raw_text`` is the verbatim engine output, kept for debugging so
    callers never have to run recognition twice.
    """

    document: ExtractedDocument
    raw_text: str
    quality_metrics: QualityMetrics


class ExtractionPipeline:
    """Preprocess, recognize and extract a single KTP image.

    Holds no per-call state: one instance may be used by many threads.

    Args:
        preprocessor: Image preprocessor. Defaults to threshold 120.
        extractor: Field extractor. Defaults to the KTP rule table.
    """

    def __init__(
        self,
        preprocessor: ImagePreprocessor | None = None,
        extractor: FieldExtractor | None = None,
    ) -> None:
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.extractor = extractor or FieldExtractor()

    @classmethod
    def from_config(cls, config: AppConfig) -> "ExtractionPipeline":
        return cls(preprocessor=ImagePreprocessor.from_config(config.preprocessing))

    def run(self, image: np.ndarray, recognize: Recognizer) -> PipelineResult:
        """Extract KTP fields from an image with the given recognizer.

        Args:
            image: Color image of shape ``(height, width, channels)``.
            recognize: Callable taking the binarized image and returning
                the recognized text.

        Returns:
            Pipeline result with the document and the raw text.

        Raises:
            InvalidImageError: If the image cannot be preprocessed.
            RecognitionFailedError: If ``recognize`` raised or returned
                something other than text.
        """
        binary, metrics = self.preprocessor.process(image)
        try:
            raw_text = recognize(binary)
        except Exception as exc:
            raise _recognition_failed(exc) from exc
        return self._finish(raw_text, metrics)

    def run_with_engine(
        self, image: np.ndarray, engine: RecognitionEngine
    ) -> PipelineResult:
        """Extract KTP fields, acquiring the engine only for recognition.

        The image is preprocessed before the engine session is opened,
        so an invalid image never touches the engine.

        Args:
            image: Color image of shape ``(height, width, channels)``.
            engine: Engine whose ``session()`` yields a recognizer.

        Raises:
            InvalidImageError: If the image cannot be preprocessed.
            RecognitionFailedError: If the session could not be opened
                or recognition failed.
        """
        binary, metrics = self.preprocessor.process(image)
        try:
            with engine.session() as recognize:
                raw_text = recognize(binary)
        except Exception as exc:
            raise _recognition_failed(exc) from exc
        return self._finish(raw_text, metrics)

    def _finish(self, raw_text: object, metrics: QualityMetrics) -> PipelineResult:
        if not isinstance(raw_text, str):
            raise RecognitionFailedError(
                f"Recognition returned {type(raw_text).__name__}, expected text"
            )
        document = self.extractor.extract(raw_text)
        return PipelineResult(
            document=document, raw_text=raw_text, quality_metrics=metrics
        )


def _recognition_failed(exc: BaseException) -> RecognitionFailedError:
    logger.error("Recognition failed: %s: %s", type(exc).__name__, exc)
    detail = str(exc) or type(exc).__name__
    return RecognitionFailedError(
        f"Text recognition did not complete: {detail}", cause=exc
    )


def load_image(source: Path | bytes) -> np.ndarray:
    """Decode an image file into an array for the pipeline.

    Images with transparency are kept as RGBA; everything else is
    converted to RGB.

    Args:
        source: Path to an image file, or its raw bytes.

    Returns:
        Image array of shape ``(height, width, 3 or 4)``.

    Raises:
        InvalidImageError: If the data is not a decodable image.
    """
    try:
        img = Image.open(io.BytesIO(source) if isinstance(source, bytes) else source)
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError("Please upload a valid image file.") from exc

    has_alpha = img.mode in ("RGBA", "LA") or "transparency" in img.info
    return np.array(img.convert("RGBA" if has_alpha else "RGB"))
