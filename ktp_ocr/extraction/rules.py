r"""Rule table for reading KTP fields out of recognized text.

Each rule lists its matchers in priority order; the extractor takes the
first one that matches. Labeled patterns run case-insensitively on the
verbatim text. Value captures stop at the end of the line because each
printed field occupies one line of the card, so a value can never run
into the next label. The flip side is that a value wrapped onto a
second line by the engine is cut at the line break.

The birth date is held to the line of its label as well: the comma must
be followed by the date on that same line. A date pushed onto the next
line after the comma leaves both birth fields absent, where a looser
``,\s*`` separator would have picked it up from the following line.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

_FLAGS = re.IGNORECASE

# Label followed by an optional colon; OCR often drops the colon or
# pads it with spaces.
_SEP = r"\s*:?\s*"
_LINE = r"([^\n]+)"


def _labeled(label: str, value: str = _LINE) -> re.Pattern[str]:
    return re.compile(label + _SEP + value, _FLAGS)


def strip(value: str) -> str:
    return value.strip()


def remove_whitespace(value: str) -> str:
    return re.sub(r"\s+", "", value)


@dataclass(frozen=True)
class LabeledCapture:
    """Regex matcher whose capture groups map onto the rule's fields."""

    pattern: re.Pattern[str]


@dataclass(frozen=True)
class KeywordPresence:
    """Matcher that fires when any keyword occurs in the normalized text.

    There is no captured text to normalize, so the rule's single field
    is set to the fixed ``value``.
    """

    keywords: tuple[str, ...]
    value: str


Matcher = LabeledCapture | KeywordPresence


@dataclass(frozen=True)
class FieldRule:
    """How to derive one field, or a pair of fields that always go together.

    Attributes:
        fields: Target field names. A ``LabeledCapture`` must have one
            group per field, in the same order.
        matchers: Matchers in priority order.
        normalize: Applied to each captured value before it is stored.
    """

    fields: tuple[str, ...]
    matchers: tuple[Matcher, ...]
    normalize: Callable[[str], str] = strip


NIK_RULE = FieldRule(
    fields=("nik",),
    matchers=(
        LabeledCapture(_labeled(r"nik", r"(\d{16})")),
        LabeledCapture(_labeled(r"nik", r"(\d{4}\s?\d{4}\s?\d{4}\s?\d{4})")),
        # The label is often garbled while the digit run survives.
        LabeledCapture(re.compile(r"\b(\d{16})\b")),
    ),
    normalize=remove_whitespace,
)

NAME_RULE = FieldRule(
    fields=("name",),
    matchers=(LabeledCapture(_labeled(r"nama")),),
)

BIRTH_RULE = FieldRule(
    fields=("birth_place", "birth_date"),
    matchers=(
        LabeledCapture(
            _labeled(r"tempat\s*/\s*tgl\s+lahir", r"([^,\n]+),[ \t]*([^\n]+)")
        ),
    ),
)

GENDER_RULE = FieldRule(
    fields=("gender",),
    matchers=(
        LabeledCapture(_labeled(r"jenis\s+kelamin", r"(\S+)")),
        KeywordPresence(keywords=("laki-laki", "laki laki"), value="LAKI-LAKI"),
        KeywordPresence(keywords=("perempuan",), value="PEREMPUAN"),
    ),
)

ADDRESS_RULE = FieldRule(
    fields=("address",),
    matchers=(LabeledCapture(_labeled(r"alamat")),),
)

RT_RW_RULE = FieldRule(
    fields=("rt", "rw"),
    matchers=(LabeledCapture(_labeled(r"rt\s*/\s*rw", r"(\d+)\s*/\s*(\d+)")),),
)

VILLAGE_RULE = FieldRule(
    fields=("village",),
    matchers=(LabeledCapture(_labeled(r"kel\s*/\s*desa")),),
)

DISTRICT_RULE = FieldRule(
    fields=("district",),
    matchers=(LabeledCapture(_labeled(r"kecamatan")),),
)

RELIGION_RULE = FieldRule(
    fields=("religion",),
    matchers=(LabeledCapture(_labeled(r"agama")),),
)

MARITAL_STATUS_RULE = FieldRule(
    fields=("marital_status",),
    matchers=(LabeledCapture(_labeled(r"status\s+perkawinan")),),
)

OCCUPATION_RULE = FieldRule(
    fields=("occupation",),
    matchers=(LabeledCapture(_labeled(r"pekerjaan")),),
)

NATIONALITY_RULE = FieldRule(
    fields=("nationality",),
    matchers=(LabeledCapture(_labeled(r"kewarganegaraan")),),
)

VALID_UNTIL_RULE = FieldRule(
    fields=("valid_until",),
    matchers=(LabeledCapture(_labeled(r"berlaku\s+hingga")),),
)

KTP_RULES: tuple[FieldRule, ...] = (
    NIK_RULE,
    NAME_RULE,
    BIRTH_RULE,
    GENDER_RULE,
    ADDRESS_RULE,
    RT_RW_RULE,
    VILLAGE_RULE,
    DISTRICT_RULE,
    RELIGION_RULE,
    MARITAL_STATUS_RULE,
    OCCUPATION_RULE,
    NATIONALITY_RULE,
    VALID_UNTIL_RULE,
)
