# -*- coding: UTF-8 -*-
"""
@File ：normalization.py
@IDE ：PyCharm
@Author ：zhanzhicai
@Date ：2025/11/8 05:06
@DOC: Normalize extraction output into certificate fields

The analyzer returns a loosely-typed key/value map. Keys may be camelCase,
snake_case or human labels ("Student Name"), and values may be bare or
wrapped as {"value": ..., "confidence": ...}. Only certificate type and
issuing institution are required.
"""
import re
from datetime import date, datetime
from typing import Any

from dateutil import parser as date_parser
from pydantic import ValidationError

from certivault.core.exceptions import PermanentExtractionError
from certivault.core.logging import get_logger
from certivault.schemas.schemas import CertificateFields, ExtractionResult

logger = get_logger(__name__)

# Canonical field -> accepted spellings, compared after _canonical_key()
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "student_name": ("studentname", "name", "fullname", "candidatename", "holdername"),
    "student_id": ("studentid", "studentnumber", "matriculationnumber", "registrationnumber", "rollnumber"),
    "date_of_birth": ("dateofbirth", "dob", "birthdate"),
    "certificate_type": ("certificatetype", "documenttype", "type", "credentialtype"),
    "degree_program": ("degreeprogram", "degree", "program", "programme", "course", "major"),
    "gpa": ("gpa", "cgpa", "gradepointaverage"),
    "issuing_institution": ("issuinginstitution", "institution", "university", "issuer", "school", "college"),
    "graduation_date": ("graduationdate", "dateofgraduation", "awarddate", "dateofaward", "conferraldate"),
    "transcript_number": ("transcriptnumber", "certificatenumber", "serialnumber", "transcriptno", "certificateno"),
}

DATE_FIELDS = {"date_of_birth", "graduation_date"}

_LOOKUP = {alias: field for field, aliases in FIELD_ALIASES.items() for alias in aliases}
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def _canonical_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", key.lower())


def _unwrap(value: Any) -> Any:
    if isinstance(value, dict):
        for candidate in ("value", "content", "text", "valueString"):
            if candidate in value:
                return value[candidate]
        return None
    return value


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def _to_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.parse(str(value), fuzzy=True).date()
    except (ValueError, OverflowError):
        # Optional fields: an unreadable date is dropped, not fatal
        logger.warning(f"Unparseable date value dropped: {value!r}")
        return None


def _to_gpa(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    # "3.75 / 4.0" -> 3.75
    match = _NUMBER.search(str(value))
    return float(match.group()) if match else None


def normalize_extraction(result: ExtractionResult) -> CertificateFields:
    """
    Map an analyzer result onto CertificateFields.

    Raises PermanentExtractionError when a required field is missing or
    when the confidence lies outside [0.0, 1.0].
    """
    if result.confidence is not None and not 0.0 <= result.confidence <= 1.0:
        raise PermanentExtractionError(
            f"Confidence {result.confidence} is outside the range [0.0, 1.0]"
        )

    collected: dict[str, Any] = {}
    for raw_key, raw_value in result.fields.items():
        field = _LOOKUP.get(_canonical_key(str(raw_key)))
        if field is None or field in collected:
            continue
        value = _unwrap(raw_value)
        if field in DATE_FIELDS:
            collected[field] = _to_date(value)
        elif field == "gpa":
            collected[field] = _to_gpa(value)
        else:
            collected[field] = _to_text(value)

    missing = [name for name in ("certificate_type", "issuing_institution") if not collected.get(name)]
    if missing:
        raise PermanentExtractionError(f"Required fields missing from extraction: {', '.join(missing)}")

    try:
        return CertificateFields(confidence_score=result.confidence, **collected)
    except ValidationError as e:
        raise PermanentExtractionError(f"Extraction output failed validation: {e.errors()}") from e
