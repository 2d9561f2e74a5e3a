"""Tesseract recognition engine used by the extraction pipeline.

The engine is configured for KTP cards: the Indonesian language model,
automatic page segmentation and preserved inter-word spacing, since the
card is a dense mixed-layout form rather than running prose.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager

import numpy as np
import pytesseract
from PIL import Image

from ktp_ocr.utils.config import OCRConfig
from ktp_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class TesseractEngine:
    """Wrapper around pytesseract for whole-card text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: Tesseract language code.
        psm: Page segmentation mode (3 is fully automatic).
        preserve_interword_spaces: Keep runs of spaces between words.
        timeout: Seconds before Tesseract is killed; 0 disables it.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "ind",
        psm: int = 3,
        preserve_interword_spaces: bool = True,
        timeout: float = 0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.psm = psm
        self.preserve_interword_spaces = preserve_interword_spaces
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: OCRConfig) -> "TesseractEngine":
        return cls(
            tesseract_cmd=config.tesseract_cmd,
            lang=config.lang,
            psm=config.psm,
            preserve_interword_spaces=config.preserve_interword_spaces,
            timeout=config.timeout,
        )

    @property
    def tesseract_config(self) -> str:
        """Command-line options passed to Tesseract."""
        options = f"--psm {self.psm}"
        if self.preserve_interword_spaces:
            options += " -c preserve_interword_spaces=1"
        return options

    def recognize(self, image: np.ndarray) -> str:
        """Run Tesseract on a preprocessed image.

        Args:
            image: Binarized image as a numpy array.

        Returns:
            The recognized text, verbatim.

        Raises:
            pytesseract.TesseractError: If Tesseract exits with an error.
            RuntimeError: If the timeout is exceeded.
        """
        pil_image = Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
        text = pytesseract.image_to_string(
            pil_image,
            lang=self.lang,
            config=self.tesseract_config,
            timeout=self.timeout,
        )
        logger.info("OCR recognized %d characters (lang=%s)", len(text), self.lang)
        return text

    @contextmanager
    def session(self) -> Iterator[Callable[[np.ndarray], str]]:
        """Acquire the engine for one recognition call.

        Checks that the Tesseract binary is available before yielding
        :meth:`recognize`. The session is released on every exit path,
        including when recognition raises.

        Raises:
            pytesseract.TesseractNotFoundError: If Tesseract is missing.
        """
        version = pytesseract.get_tesseract_version(cached=True)
        logger.debug("Opened Tesseract %s session (lang=%s)", version, self.lang)
        try:
            yield self.recognize
        finally:
            logger.debug("Released Tesseract session")
