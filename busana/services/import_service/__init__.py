"""Import service package: spreadsheet parsing, validation, duplicate checks and upserts."""

from .constants import (
    ALLOWED_EXTENSIONS,
    DATE_FORMATS,
    FIELD_DESCRIPTIONS,
    HEADER_ALIASES,
    REQUIRED_FIELDS,
    CanonicalField,
)
from .converters import (
    RECORD_MODELS,
    RowError,
    ValidRow,
    coerce_bool,
    coerce_number,
    natural_key,
    validate_row,
)
from .dates import NormalizedDate, date_formats_for, normalize_date
from .duplicates import (
    DateRange,
    DuplicateFinding,
    MAX_PREVIOUS_IMPORTS,
    DuplicateReport,
    check_duplicates,
    compute_file_hash,
    extract_date_range,
    overlap_ratio,
    record_duplicate_check,
    score_overlap,
)
from .errors import (
    DuplicateImportError,
    FileTooLargeError,
    ImportAbortedError,
    ImportFileError,
    ImportServiceError,
    StorageUnavailableError,
)
from .mapping import (
    missing_required_columns,
    normalize_header,
    resolve_headers,
    resolve_row,
    suggest_column_mapping,
)
from .metadata import analyze_rows, persist_import_metadata, record_import_metadata
from .outcome import Degraded, Ok, Outcome
from .parsers import ParsedFile, get_file_extension, parse_csv, parse_upload, parse_xls, parse_xlsx
from .processor import (
    ImportResult,
    PrecheckResult,
    apply_stock_movements,
    precheck_file,
    run_import,
    upsert_rows,
)

__all__ = [
    # Constants
    "ALLOWED_EXTENSIONS",
    "DATE_FORMATS",
    "FIELD_DESCRIPTIONS",
    "HEADER_ALIASES",
    "REQUIRED_FIELDS",
    "CanonicalField",
    # Parsers
    "ParsedFile",
    "get_file_extension",
    "parse_csv",
    "parse_upload",
    "parse_xls",
    "parse_xlsx",
    # Column resolution
    "missing_required_columns",
    "normalize_header",
    "resolve_headers",
    "resolve_row",
    "suggest_column_mapping",
    # Dates
    "NormalizedDate",
    "date_formats_for",
    "normalize_date",
    # Validation
    "RECORD_MODELS",
    "RowError",
    "ValidRow",
    "coerce_bool",
    "coerce_number",
    "natural_key",
    "validate_row",
    # Duplicates
    "DateRange",
    "DuplicateFinding",
    "MAX_PREVIOUS_IMPORTS",
    "DuplicateReport",
    "check_duplicates",
    "compute_file_hash",
    "extract_date_range",
    "overlap_ratio",
    "record_duplicate_check",
    "score_overlap",
    # Metadata
    "analyze_rows",
    "persist_import_metadata",
    "record_import_metadata",
    # Processor
    "ImportResult",
    "PrecheckResult",
    "apply_stock_movements",
    "precheck_file",
    "run_import",
    "upsert_rows",
    # Results and errors
    "Degraded",
    "Ok",
    "Outcome",
    "DuplicateImportError",
    "FileTooLargeError",
    "ImportAbortedError",
    "ImportFileError",
    "ImportServiceError",
    "StorageUnavailableError",
]
