"""Field extraction from recognized KTP text.

Applies the rule table in :mod:`ktp_ocr.extraction.rules` to raw OCR
output and builds an :class:`ExtractedDocument`. Extraction never
fails: a rule that finds nothing leaves its fields absent.
"""

import re

from ktp_ocr.utils.logger import get_logger

from .document import ExtractedDocument
from .rules import KTP_RULES, FieldRule, KeywordPresence, LabeledCapture, Matcher

logger = get_logger(__name__)


def normalize_view(text: str) -> str:
    """Lower-case the text and collapse whitespace runs to one space."""
    return re.sub(r"\s+", " ", text.lower())


class FieldExtractor:
    """Rule-table driven extractor for KTP fields.

    The rule table is immutable, so an instance can be shared freely
    between threads.

    Args:
        rules: Field rules to apply. Defaults to the KTP rule table.
    """

    def __init__(self, rules: tuple[FieldRule, ...] = KTP_RULES) -> None:
        self.rules = rules

    def extract(self, raw_text: str) -> ExtractedDocument:
        """Extract all fields from recognized text.

        Args:
            raw_text: Verbatim output of the recognition engine.

        Returns:
            Document with every field the rules could find; the rest
            are ``None``.
        """
        normalized = normalize_view(raw_text)
        values: dict[str, str] = {}

        for rule in self.rules:
            values.update(self.apply_rule(rule, raw_text, normalized))

        document = ExtractedDocument(**values)
        logger.info(
            "Field extraction populated %d of %d fields",
            len(values),
            len(ExtractedDocument.field_names()),
        )
        return document

    def apply_rule(
        self, rule: FieldRule, raw_text: str, normalized: str | None = None
    ) -> dict[str, str]:
        """Evaluate one rule's matchers in order and return the first hit.

        Args:
            rule: Rule to evaluate.
            raw_text: Verbatim recognized text.
            normalized: Precomputed :func:`normalize_view` of ``raw_text``.

        Returns:
            Mapping of field name to value for the winning matcher, or
            an empty dict when no matcher succeeds.
        """
        if normalized is None:
            normalized = normalize_view(raw_text)

        for index, matcher in enumerate(rule.matchers):
            result = _match(matcher, rule, raw_text, normalized)
            if result is not None:
                logger.debug(
                    "Matched %s with matcher %d (%s)",
                    "/".join(rule.fields),
                    index,
                    type(matcher).__name__,
                )
                return result
        return {}


def _match(
    matcher: Matcher, rule: FieldRule, raw_text: str, normalized: str
) -> dict[str, str] | None:
    if isinstance(matcher, KeywordPresence):
        if any(keyword in normalized for keyword in matcher.keywords):
            return {rule.fields[0]: matcher.value}
        return None

    if isinstance(matcher, LabeledCapture):
        match = matcher.pattern.search(raw_text)
        if match is None:
            return None
        values = [rule.normalize(group or "") for group in match.groups()]
        # A capture that normalizes to nothing does not count as a match,
        # and multi-field rules are all-or-nothing.
        if len(values) != len(rule.fields) or not all(values):
            return None
        return dict(zip(rule.fields, values))

    raise TypeError(f"Unsupported matcher type: {type(matcher).__name__}")
