"""
CSV header validation for batch-prediction uploads.

Checks that an uploaded CSV's header row is an exact, order-independent match
for the columns a model requires, and produces actionable findings otherwise.

Header parsing
--------------
The first line of the file is split on ``,``. Each field is stripped of
surrounding whitespace and quote characters. A UTF-8 byte-order mark is
tolerated. Data rows are never inspected.

Findings
--------
  no_model_selected  — no model key chosen; nothing is parsed.
  invalid_file_type  — filename does not end with ``.csv``; nothing is parsed.
  empty_file         — file has no content after trimming whitespace.
  parse_failure      — the bytes could not be decoded or split.
  missing_columns    — required columns absent from the header.
  extra_columns      — header columns the model does not accept.
  duplicate_columns  — header columns that appear more than once.

A result is valid iff ``len(header) == len(required)`` and there are no
missing or extra columns. ``validate_csv`` never raises: every failure is
returned as a finding so callers can always render the result.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional, Sequence

from prediction_dashboard.catalog.model_requirements import get_requirement
from prediction_dashboard.exceptions import UnknownModelError

logger = logging.getLogger(__name__)

_QUOTE_CHARS = "\"'"


class FindingKind(StrEnum):
    """Category of a validation finding."""

    NO_MODEL_SELECTED = "no_model_selected"
    INVALID_FILE_TYPE = "invalid_file_type"
    EMPTY_FILE = "empty_file"
    PARSE_FAILURE = "parse_failure"
    MISSING_COLUMNS = "missing_columns"
    EXTRA_COLUMNS = "extra_columns"
    DUPLICATE_COLUMNS = "duplicate_columns"


@dataclass(frozen=True)
class ValidationFinding:
    """One problem found with an upload."""

    kind: FindingKind
    message: str
    columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class HeaderValidationResult:
    """Outcome of validating one upload against one model.

    Attributes:
        findings: Problems found, in the order they were detected.
        headers: Parsed header row (empty if parsing did not happen).
        required: Columns the selected model requires (empty if none selected).
        is_valid: True iff the header is an exact set match for ``required``.
    """

    findings: tuple[ValidationFinding, ...] = ()
    headers: tuple[str, ...] = ()
    required: tuple[str, ...] = ()
    is_valid: bool = False

    @property
    def missing_columns(self) -> list[str]:
        return self._columns_of(FindingKind.MISSING_COLUMNS)

    @property
    def extra_columns(self) -> list[str]:
        return self._columns_of(FindingKind.EXTRA_COLUMNS)

    @property
    def duplicate_columns(self) -> list[str]:
        return self._columns_of(FindingKind.DUPLICATE_COLUMNS)

    def has(self, kind: FindingKind) -> bool:
        """Return True if any finding is of ``kind``."""
        return any(f.kind == kind for f in self.findings)

    def _columns_of(self, kind: FindingKind) -> list[str]:
        for f in self.findings:
            if f.kind == kind:
                return list(f.columns)
        return []


@dataclass
class UploadedFile:
    """An uploaded CSV as received from a file picker or read from disk."""

    filename: str
    content: bytes = field(repr=False)


# ── Public API ─────────────────────────────────────────────────────────────────


def is_csv_filename(filename: str) -> bool:
    """Return True if ``filename`` has a ``.csv`` extension (case-insensitive)."""
    return filename.lower().endswith(".csv")


def parse_header_row(text: str) -> list[str]:
    """Return the header fields from the first line of ``text``.

    Fields are split on commas and stripped of whitespace and surrounding
    quote characters. Returns an empty list when ``text`` is blank.
    """
    stripped = text.strip()
    if not stripped:
        return []
    first_line = stripped.splitlines()[0]
    return [h.strip().strip(_QUOTE_CHARS).strip() for h in first_line.split(",")]


def compare_headers(
    required: Sequence[str],
    headers: Sequence[str],
) -> HeaderValidationResult:
    """Compare a parsed header row against the required columns.

    Missing columns are reported in required order, extra and duplicate
    columns in header order.

    Args:
        required: Columns the model needs.
        headers: Columns found in the file.

    Returns:
        A :class:`HeaderValidationResult` (never raises).
    """
    required_set = set(required)
    header_set = set(headers)

    missing = [c for c in required if c not in header_set]
    extra = [c for c in headers if c not in required_set]
    counts = Counter(headers)
    duplicates = [c for c in counts if counts[c] > 1]

    findings: list[ValidationFinding] = []
    if missing:
        findings.append(ValidationFinding(
            FindingKind.MISSING_COLUMNS, "Missing required columns", tuple(missing)
        ))
    if extra:
        findings.append(ValidationFinding(
            FindingKind.EXTRA_COLUMNS, "Extra columns not required by model", tuple(extra)
        ))
    if duplicates:
        findings.append(ValidationFinding(
            FindingKind.DUPLICATE_COLUMNS, "Duplicate column names", tuple(duplicates)
        ))

    is_valid = len(headers) == len(required) and not missing and not extra
    return HeaderValidationResult(
        findings=tuple(findings),
        headers=tuple(headers),
        required=tuple(required),
        is_valid=is_valid,
    )


def validate_csv(
    upload: Optional[UploadedFile],
    model_key: Optional[str],
) -> HeaderValidationResult:
    """Validate an uploaded CSV's header row for the selected model.

    Args:
        upload: The uploaded file, or ``None`` if nothing is attached.
        model_key: Selected key from the requirements table, or ``None``/empty.

    Returns:
        A :class:`HeaderValidationResult`. Never raises.
    """
    if not model_key:
        return _single(FindingKind.NO_MODEL_SELECTED, "Please select a model first")

    try:
        requirement = get_requirement(model_key)
    except UnknownModelError as exc:
        return _single(FindingKind.NO_MODEL_SELECTED, exc.message)
    required = requirement.columns

    if upload is None:
        return HeaderValidationResult(required=required)

    if not is_csv_filename(upload.filename):
        return _single(FindingKind.INVALID_FILE_TYPE, "Please upload a CSV file", required)

    try:
        text = upload.content.decode("utf-8-sig")
        headers = parse_header_row(text)
    except (UnicodeDecodeError, AttributeError, ValueError) as exc:
        logger.warning("Failed to parse %s: %s", upload.filename, exc)
        return _single(FindingKind.PARSE_FAILURE, "Failed to parse CSV file", required)

    if not headers:
        return _single(FindingKind.EMPTY_FILE, "CSV file is empty", required)

    result = compare_headers(required, headers)
    logger.info(
        "Validated %s for %s: %d column(s), valid=%s",
        upload.filename, model_key, len(headers), result.is_valid,
    )
    return result


# ── Private helpers ────────────────────────────────────────────────────────────

def _single(
    kind: FindingKind,
    message: str,
    required: tuple[str, ...] = (),
) -> HeaderValidationResult:
    return HeaderValidationResult(
        findings=(ValidationFinding(kind, message),),
        required=required,
        is_valid=False,
    )
