"""Application constants."""

USER_AGENT = "lux-housing-prices/0.3 (+research; contact: configured-email)"
STAGES = (
    "fetch",
    "reconcile",
    "index",
    "charts",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
DEFAULT_MAX_DISTANCE = 2
MATCH_KINDS = ("exact", "prefix", "contains", "regex")
PROVENANCE_CURRENT = "current"
PROVENANCE_FORMER = "former"
DATASET_COLUMNS = (
    "year",
    "locality",
    "offer_count",
    "average_price",
    "average_price_sqm",
)
NUMERIC_COLUMNS = (
    "offer_count",
    "average_price",
    "average_price_sqm",
)
NATIONAL_LABEL = "Luxembourg (pays)"
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
