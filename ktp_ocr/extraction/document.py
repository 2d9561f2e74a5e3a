"""Structured record of the fields read from a KTP."""

from dataclasses import asdict, dataclass, fields

# Display labels in the order the fields are printed on the card.
FIELD_LABELS: dict[str, str] = {
    "nik": "NIK",
    "name": "Name",
    "birth_place": "Birth Place",
    "birth_date": "Birth Date",
    "gender": "Gender",
    "address": "Address",
    "rt": "RT",
    "rw": "RW",
    "village": "Village",
    "district": "District",
    "religion": "Religion",
    "marital_status": "Marital Status",
    "occupation": "Occupation",
    "nationality": "Nationality",
    "valid_until": "Valid Until",
}


@dataclass(frozen=True)
class ExtractedDocument:
    """Identity fields extracted from recognized card text.

    Every field is either ``None`` (not found) or a trimmed, non-empty
    string. ``None`` is meaningful and is kept distinct from ``""``.
    """

    nik: str | None = None
    name: str | None = None
    birth_place: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    address: str | None = None
    rt: str | None = None
    rw: str | None = None
    village: str | None = None
    district: str | None = None
    religion: str | None = None
    marital_status: str | None = None
    occupation: str | None = None
    nationality: str | None = None
    valid_until: str | None = None

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self, include_absent: bool = True) -> dict[str, str | None]:
        """Convert to a plain dictionary.

        Args:
            include_absent: Keep absent fields as ``None`` entries. When
                ``False``, only populated fields are returned.
        """
        data = asdict(self)
        if include_absent:
            return data
        return {name: value for name, value in data.items() if value is not None}

    def present_fields(self) -> list[str]:
        return [name for name, value in asdict(self).items() if value is not None]

    def display_rows(self) -> list[tuple[str, str]]:
        """Return ``(label, value)`` rows for the populated fields.

        RT and RW are shown as one ``RT/RW`` row, as they are printed on
        the card.
        """
        rows: list[tuple[str, str]] = []
        for name, label in FIELD_LABELS.items():
            if name == "rw":
                continue
            if name == "rt":
                if self.rt is not None or self.rw is not None:
                    rows.append(("RT/RW", f"{self.rt or ''}/{self.rw or ''}"))
                continue
            value = getattr(self, name)
            if value is not None:
                rows.append((label, value))
        return rows
