"""Core constants used across Widen modules.

This module centralizes column names, artifact names, and defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_TARGET_ROOT = Path(".widen")
INTERMEDIATE_DIR_NAME = "intermediate"
RESULT_DIR_NAME = "result"
PARQUET_DIR_NAME = "parquet"
CSV_DIR_NAME = "csv"
PARQUET_PART_FILE_NAME = "part-00000.parquet"
CSV_PART_FILE_NAME = "part-00000.csv"
RESULT_CSV_FILE_NAME = "result.csv"
MANIFEST_FILE_NAME = "manifest.json"
SNAPSHOT_COUNTER_WIDTH = 2

OUTPUT_FORMAT_PARQUET = "parquet"
OUTPUT_FORMAT_CSV = "csv"
SUPPORTED_OUTPUT_FORMATS = (OUTPUT_FORMAT_PARQUET, OUTPUT_FORMAT_CSV)
DEFAULT_OUTPUT_FORMAT = OUTPUT_FORMAT_PARQUET
SAVE_MODE_OVERWRITE = "overwrite"
SAVE_MODE_ERROR = "error"
SUPPORTED_SAVE_MODES = (SAVE_MODE_OVERWRITE, SAVE_MODE_ERROR)
DEFAULT_SAVE_MODE = SAVE_MODE_OVERWRITE
DEFAULT_WORKERS = 4
DEFAULT_PARTITION_ROWS = 10000
RESULT_CSV_DELIMITER = "|"
RESULT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_INPUT_DELIMITER = ","

VAR_RECORD_ID = "proc_inst_id_"
VAR_NAME = "name_"
VAR_TYPE = "var_type_"
VAR_TEXT_VALUE = "text_"
VAR_LONG_VALUE = "long_"
VAR_DOUBLE_VALUE = "double_"
KEY_VALUE_COLUMNS = (VAR_NAME, VAR_TYPE, VAR_TEXT_VALUE, VAR_LONG_VALUE, VAR_DOUBLE_VALUE)
VALUE_COLUMN_BY_TYPE = {
    "string": VAR_TEXT_VALUE,
    "short": VAR_LONG_VALUE,
    "integer": VAR_LONG_VALUE,
    "long": VAR_LONG_VALUE,
    "boolean": VAR_LONG_VALUE,
    "date": VAR_LONG_VALUE,
    "double": VAR_DOUBLE_VALUE,
}

RAW_VARIABLES_KEY = "process_variables_raw"
ESCALATED_VARIABLES_KEY = "process_variables_escalated"
STRING_VARIABLE_TYPE = "string"
FLATTENABLE_VARIABLE_TYPES = ("string", "json", "object", "serializable")
NUMERIC_TYPE_ORDER = ("short", "integer", "long", "double")
DUPLICATED_COLUMN_PATTERN = r"(\w+_)\d*"
NULL_LITERAL = "null"

DEFAULT_MATCH_THRESHOLD = 0.4
DEFAULT_UNMATCHED_CATEGORY = "OTHER"
DEFAULT_UNKNOWN_CATEGORY = "UNKNOWN"
REFERENCE_FIELD_SEPARATOR = ";"
PLACEHOLDER_CATEGORY_VALUES = ("", "-")
