"""Duplicate detection for uploads.

Two layers run against the import history of the same import type:

* exact: the SHA-256 of the file matches an earlier successful import;
* probable: the business dates in the file overlap the date range of a
  recent import, scored by how much they overlap and whether the two
  imports hold a similar number of distinct records.

The check is advisory. It never raises; when it cannot reach a verdict the
report says ``unknown`` and carries the reason.
"""

import difflib
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from beanie import PydanticObjectId
from beanie.operators import In
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from busana.models import (
    CheckResult,
    DuplicateCheckLog,
    ImportHistoryEntry,
    ImportMetadata,
    ImportStatus,
    ImportType,
    MetadataType,
    RiskLevel,
)
from busana.models.import_history import DateRangeMetadata

from .constants import DATE_RANGE_FIELDS
from .converters import natural_key
from .outcome import Degraded, Ok, Outcome

logger = logging.getLogger(__name__)

FILE_NAME_SIMILARITY = 0.9
HIGH_OVERLAP = 0.9
MEDIUM_OVERLAP = 0.5
KEY_COUNT_SIMILARITY = 0.9
MAX_PREVIOUS_IMPORTS = 10


@dataclass(frozen=True)
class DateRange:
    """Earliest and latest business date found in a set of records."""

    start: date
    end: date
    total_dates: int = 0
    unique_days: int = 0

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class DuplicateFinding:
    """One earlier import that the upload may duplicate."""

    kind: str  # "exact-duplicate-file", "overlapping-dates" or "similar-file-name"
    risk_level: RiskLevel
    history_id: str
    file_name: str
    imported_at: datetime
    total_records: int
    overlap: Optional[float] = None
    date_range: Optional[dict[str, str]] = None


@dataclass
class DuplicateReport:
    """Verdict of a duplicate check."""

    file_hash: Optional[str]
    risk_level: RiskLevel
    findings: list[DuplicateFinding] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None
    degraded_reason: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.risk_level in (RiskLevel.MEDIUM, RiskLevel.HIGH)

    @property
    def exact_duplicates(self) -> list[DuplicateFinding]:
        return [f for f in self.findings if f.kind == "exact-duplicate-file"]

    def check_result(self) -> CheckResult:
        return CheckResult(
            is_duplicate=self.is_duplicate,
            risk_level=self.risk_level,
            similar_imports_count=len({f.history_id for f in self.findings}),
            exact_duplicates_count=len(self.exact_duplicates),
            date_range=self.date_range.to_dict() if self.date_range else None,
            degraded_reason=self.degraded_reason,
        )


def compute_file_hash(content: bytes) -> Outcome[str]:
    """SHA-256 of the raw upload, hex encoded."""
    try:
        return Ok(hashlib.sha256(content).hexdigest())
    except (TypeError, ValueError) as e:
        logger.warning("Could not hash upload: %s", e)
        return Degraded(f"file hash unavailable: {e}")


def extract_date_range(records: list[dict[str, Any]], import_type: ImportType) -> DateRange | None:
    """Date range covered by validated records, or None if they carry no dates."""
    days: list[date] = []
    for values in records:
        for field_name in DATE_RANGE_FIELDS[import_type]:
            value = values.get(field_name.value)
            if isinstance(value, datetime):
                days.append(value.date())

    if not days:
        return None
    return DateRange(start=min(days), end=max(days), total_dates=len(days), unique_days=len(set(days)))


def overlap_ratio(a: DateRange, b: DateRange) -> float:
    """Jaccard overlap of two inclusive day windows (0.0 to 1.0)."""
    latest_start = max(a.start, b.start)
    earliest_end = min(a.end, b.end)
    if earliest_end < latest_start:
        return 0.0
    intersection = (earliest_end - latest_start).days + 1
    union = (max(a.end, b.end) - min(a.start, b.start)).days + 1
    return intersection / union


def _same_month(a: DateRange, b: DateRange) -> bool:
    months = {(d.year, d.month) for d in (a.start, a.end, b.start, b.end)}
    return len(months) == 1


def _key_counts_similar(new_count: int, prior_count: int) -> bool:
    if new_count <= 0 or prior_count <= 0:
        return False
    return min(new_count, prior_count) / max(new_count, prior_count) >= KEY_COUNT_SIMILARITY


def score_overlap(
    new_range: DateRange,
    new_key_count: int,
    prior_range: DateRange,
    prior_key_count: int,
) -> RiskLevel:
    """Risk that an upload repeats an earlier import, from dates and record counts.

    * ``high``: windows overlap at least 90% and the distinct record counts
      are within 10% of each other;
    * ``medium``: both windows sit in the same calendar month, or they
      overlap at least 50%;
    * ``low``: any other overlap;
    * ``none``: the windows are disjoint.
    """
    overlap = overlap_ratio(new_range, prior_range)
    if overlap == 0.0:
        return RiskLevel.NONE
    if overlap >= HIGH_OVERLAP and _key_counts_similar(new_key_count, prior_key_count):
        return RiskLevel.HIGH
    if _same_month(new_range, prior_range) or overlap >= MEDIUM_OVERLAP:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def file_name_similarity(a: str, b: str) -> float:
    return difflib.SequenceMatcher(None, a.lower(), b.lower()).ratio()


def _finding(kind: str, risk: RiskLevel, entry: ImportHistoryEntry, **extra: Any) -> DuplicateFinding:
    return DuplicateFinding(
        kind=kind,
        risk_level=risk,
        history_id=str(entry.id),
        file_name=entry.file_name,
        imported_at=entry.created_at,
        total_records=entry.total_records,
        **extra,
    )


async def _load_prior_ranges(entries: list[ImportHistoryEntry]) -> dict[PydanticObjectId, DateRangeMetadata]:
    if not entries:
        return {}
    records = await ImportMetadata.find(
        In(ImportMetadata.import_history_id, [e.id for e in entries]),
        ImportMetadata.metadata_type == MetadataType.DATE_RANGE,
    ).to_list()

    ranges: dict[PydanticObjectId, DateRangeMetadata] = {}
    for record in records:
        try:
            payload = record.payload()
        except ValidationError as e:
            logger.warning("Skipping unreadable date_range metadata %s: %s", record.id, e)
            continue
        if isinstance(payload, DateRangeMetadata):
            ranges[record.import_history_id] = payload
    return ranges


def _summarize(report: DuplicateReport) -> None:
    """Fill in warnings and recommendations from the findings."""
    for finding in report.findings:
        when = finding.imported_at.strftime("%Y-%m-%d %H:%M")
        if finding.kind == "exact-duplicate-file":
            report.warnings.append(f"Identical file already imported as '{finding.file_name}' on {when}")
        elif finding.kind == "overlapping-dates":
            report.warnings.append(
                f"Dates overlap {finding.overlap:.0%} with '{finding.file_name}' imported on {when}"
            )
        else:
            report.warnings.append(f"File name is similar to '{finding.file_name}' imported on {when}")

    if report.exact_duplicates:
        report.recommendations.append("This file has been imported before; re-importing only overwrites existing rows")
    elif report.risk_level in (RiskLevel.HIGH, RiskLevel.MEDIUM):
        report.recommendations.append("Compare the date range with the earlier import before continuing")
    elif report.risk_level == RiskLevel.UNKNOWN:
        report.recommendations.append("Duplicate check was incomplete; review the import history manually")
    else:
        report.recommendations.append("No duplicate detected, safe to import")


async def check_duplicates(
    content: bytes,
    file_name: str,
    import_type: ImportType,
    records: list[dict[str, Any]],
    lookback_days: int = 90,
    now: datetime | None = None,
) -> DuplicateReport:
    """Check an upload against earlier imports of the same type.

    Args:
        content: Raw file bytes.
        file_name: Original file name.
        import_type: Type of the upload.
        records: Validated record values from the upload.
        lookback_days: How far back to look for overlapping date ranges.
        now: Reference time for the lookback window.

    Returns:
        The report. Storage errors and missing dates give ``unknown``.
    """
    hash_outcome = compute_file_hash(content)
    if isinstance(hash_outcome, Degraded):
        report = DuplicateReport(file_hash=None, risk_level=RiskLevel.UNKNOWN, degraded_reason=hash_outcome.reason)
        _summarize(report)
        return report
    file_hash = hash_outcome.value

    date_range = extract_date_range(records, import_type)
    key_count = len({natural_key(values, import_type) for values in records})
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=lookback_days)

    try:
        exact = await ImportHistoryEntry.find(
            ImportHistoryEntry.import_type == import_type,
            ImportHistoryEntry.file_hash == file_hash,
            ImportHistoryEntry.import_status != ImportStatus.FAILED,
        ).sort(-ImportHistoryEntry.created_at).to_list()
        recent = await ImportHistoryEntry.find(
            ImportHistoryEntry.import_type == import_type,
            ImportHistoryEntry.created_at >= cutoff,
            ImportHistoryEntry.import_status != ImportStatus.FAILED,
        ).sort(-ImportHistoryEntry.created_at).to_list()
        prior_ranges = await _load_prior_ranges(recent)
    except PyMongoError as e:
        logger.warning("Duplicate check for %s skipped, history unavailable: %s", file_name, e)
        report = DuplicateReport(
            file_hash=file_hash,
            risk_level=RiskLevel.UNKNOWN,
            date_range=date_range,
            degraded_reason=f"import history unavailable: {e}",
        )
        _summarize(report)
        return report

    findings = [_finding("exact-duplicate-file", RiskLevel.HIGH, entry) for entry in exact]
    exact_ids = {entry.id for entry in exact}

    for entry in recent:
        if entry.id in exact_ids:
            continue
        prior = prior_ranges.get(entry.id)
        if date_range is not None and prior is not None:
            prior_range = DateRange(start=prior.start, end=prior.end)
            risk = score_overlap(date_range, key_count, prior_range, prior.unique_keys)
            if risk != RiskLevel.NONE:
                findings.append(
                    _finding(
                        "overlapping-dates",
                        risk,
                        entry,
                        overlap=round(overlap_ratio(date_range, prior_range), 4),
                        date_range=prior_range.to_dict(),
                    )
                )
                continue
        if file_name_similarity(file_name, entry.file_name) >= FILE_NAME_SIMILARITY:
            findings.append(_finding("similar-file-name", RiskLevel.LOW, entry))

    degraded_reason = None
    if findings:
        risk_level = max((f.risk_level for f in findings), key=lambda r: r.rank)
    elif date_range is None and DATE_RANGE_FIELDS[import_type]:
        risk_level = RiskLevel.UNKNOWN
        degraded_reason = "no parseable business dates in file"
    else:
        risk_level = RiskLevel.NONE

    report = DuplicateReport(
        file_hash=file_hash,
        risk_level=risk_level,
        findings=findings,
        date_range=date_range,
        degraded_reason=degraded_reason,
    )
    _summarize(report)
    return report


async def record_duplicate_check(
    report: DuplicateReport,
    file_name: str,
    file_size: int,
    import_type: ImportType,
) -> Outcome[DuplicateCheckLog]:
    """Persist a DuplicateCheckLog. Failures are logged, never raised."""
    log = DuplicateCheckLog(
        file_name=file_name,
        file_size=file_size,
        file_hash=report.file_hash,
        import_type=import_type,
        check_result=report.check_result(),
    )
    try:
        await log.insert()
    except PyMongoError as e:
        logger.warning("Could not record duplicate check for %s: %s", file_name, e)
        return Degraded(str(e))
    return Ok(log)
