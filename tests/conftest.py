"""Shared test fixtures for the KTP OCR test suite."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import numpy as np
import pytest

KTP_TEXT = (
    "PROVINSI DKI JAKARTA\n"
    "JAKARTA SELATAN\n"
    "NIK : 3171234567890123\n"
    "Nama : BUDI SANTOSO\n"
    "Tempat/Tgl Lahir : JAKARTA, 17-08-1985\n"
    "Jenis Kelamin : LAKI-LAKI  Gol. Darah : O\n"
    "Alamat : JL. MERDEKA NO. 10\n"
    "RT/RW : 005/003\n"
    "Kel/Desa : KEBAYORAN LAMA\n"
    "Kecamatan : KEBAYORAN BARU\n"
    "Agama : ISLAM\n"
    "Status Perkawinan : KAWIN\n"
    "Pekerjaan : KARYAWAN SWASTA\n"
    "Kewarganegaraan : WNI\n"
    "Berlaku Hingga : SEUMUR HIDUP\n"
)


class StubEngine:
    """Recognition engine double that records session lifecycle."""

    def __init__(
        self,
        text: str = KTP_TEXT,
        error: BaseException | None = None,
        open_error: BaseException | None = None,
    ) -> None:
        self.text = text
        self.error = error
        self.open_error = open_error
        self.opened = 0
        self.released = 0
        self.images: list[np.ndarray] = []

    def recognize(self, image: np.ndarray) -> str:
        self.images.append(image)
        if self.error is not None:
            raise self.error
        return self.text

    @contextmanager
    def session(self) -> Iterator[Callable[[np.ndarray], str]]:
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1
        try:
            yield self.recognize
        finally:
            self.released += 1


@pytest.fixture
def ktp_text() -> str:
    """Recognized text of a cleanly scanned KTP."""
    return KTP_TEXT


@pytest.fixture
def stub_engine() -> StubEngine:
    return StubEngine()


@pytest.fixture
def card_image() -> np.ndarray:
    """Synthetic RGB card: light background with a dark text band."""
    image = np.full((120, 200, 3), 210, dtype=np.uint8)
    image[40:60, 20:180] = (30, 40, 50)
    return image


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def engine_factory() -> type[StubEngine]:
    """Build stub engines with custom text or failures."""
    return StubEngine
