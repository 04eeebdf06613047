"""
Configuration: ingestion limits, header/column rule tables, goal registry.

COLUMN_RULES and GOAL_LABEL_RULES are ordered rule tables evaluated top to
bottom, first match wins. GOAL_REGISTRY maps each goal to its evaluation
direction, display unit and scaling kind.
"""

import os

# ---------------------------------------------------------------------------
# Ingestion limits
# ---------------------------------------------------------------------------
MAX_FILE_SIZE_BYTES = 50 * 1024 * 1024

# Rows scanned for a header, per CSV table or per workbook sheet
HEADER_SCAN_ROWS = 35

# A header row must carry the date family to be accepted
MIN_HEADER_SCORE = 5

WORKBOOK_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
LEGACY_WORKBOOK_SUFFIXES = {".xls"}

CURRENCY_SIGILS = ("$", "€", "£")

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
STORAGE_KEY = "rework-dashboard-data-v13"

# ---------------------------------------------------------------------------
# Header scoring: (keywords, weight). A family counts once per row.
# ---------------------------------------------------------------------------
HEADER_FAMILIES: list[tuple[tuple[str, ...], int]] = [
    (("hold date", "production date", "date produced", "prod date", "date", "day"), 5),
    (("cases produced",), 2),
    (("cases reworked",), 2),
    (("root cause", "cause", "reason"), 2),
    (("disposition", "status"), 1),
    (("plant", "work center", "site", "location"), 1),
]

# ---------------------------------------------------------------------------
# Column rules
# ---------------------------------------------------------------------------
# Each field maps to an ordered list of rules:
#   (mode, candidates, excludes)
# A candidate is a tuple of fragments that must all appear in the header text.
# Modes:
#   contains          lowercase, whitespace collapsed, substring
#   compact_equals    lowercase, whitespace removed, equality
#   compact_contains  lowercase, whitespace removed, substring
#   alnum_equals      lowercase, alphanumerics only, equality
#   alnum_contains    lowercase, alphanumerics only, substring
#   currency_contains compact_contains, and the raw header carries a sigil
_HOLD_DATE = (("hold date",), ("date placed",), ("date held",))
_PRODUCTION_DATE = (("production date",), ("product date",), ("date produced",), ("prod date",))

COLUMN_RULES: dict[str, list[tuple[str, tuple[tuple[str, ...], ...], tuple[str, ...]]]] = {
    "date": [
        ("contains", _HOLD_DATE, ()),
        ("contains", _PRODUCTION_DATE, ()),
        ("contains", (("date",), ("day",)), ()),
    ],
    "hold_date": [
        ("contains", _HOLD_DATE, ()),
    ],
    "production_date": [
        ("contains", _PRODUCTION_DATE, ()),
    ],
    "description": [
        ("contains", (("description",),), ()),
        ("contains", (("desc",),), ()),
        ("contains", (("product",), ("item",)), ("date", "type")),
    ],
    "item_type": [
        ("contains", (("item type",),), ()),
        ("contains", (("type",), ("category",)), ()),
    ],
    "plant_name": [
        ("compact_contains", (("plantname",),), ()),
        ("compact_equals", (("plant",),), ()),
    ],
    "work_center": [
        ("compact_contains", (("workcentertext",),), ()),
    ],
    "site": [
        ("contains", (("site",),), ()),
    ],
    "location": [
        ("compact_equals", (("location",),), ()),
    ],
    "disposition": [
        ("compact_equals", (("disposition",), ("status",)), ()),
    ],
    "root_cause": [
        ("contains", (("root cause",),), ("goal",)),
        ("contains", (("cause",), ("root",), ("reason",)), ("goal",)),
    ],
    "cases_produced": [
        ("compact_equals", (("casesproduced",),), ()),
    ],
    "cases_reworked": [
        ("compact_equals", (("casesreworked",),), ()),
    ],
    "cost": [
        ("compact_equals", (("cost",),), ()),
        ("currency_contains", (("scrap",),), ("goal",)),
        ("currency_contains", (("rework",),), ("goal",)),
    ],
    "cost_impact": [
        ("compact_contains", (("costimpact",),), ()),
    ],
    "rework_lag": [
        ("compact_contains", (("reworklag",),), ()),
    ],
    "mfg_order": [
        ("alnum_equals", (("mfgord",), ("mfgorder",)), ()),
    ],
    "work_order": [
        ("alnum_equals", (
            ("wo",), ("workorder",), ("workordernumber",), ("workorderid",),
            ("batchnumber",), ("batch",),
        ), ()),
        ("alnum_contains", (("workorder",),), ()),
    ],
    "goal_rework_cost": [
        ("compact_contains", (("goal", "reworkcost"),), ()),
    ],
    "goal_release_rate": [
        ("compact_contains", (("goal", "release"),), ()),
    ],
    "goal_root_cause_assignment": [
        ("compact_contains", (("goal", "assignment"),), ()),
    ],
}

# Position of the fallback work-order cell when no order column resolves
WORK_ORDER_FALLBACK_INDEX = 1

UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"

# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------
DEFAULT_GOALS: dict[str, float] = {
    "rework_cost": 7_000_000.0,
    "release_rate": 40.0,
    "root_cause_assignment": 90.0,
}

# direction: "higher" (bigger is better) or "lower" (smaller is better)
# kind: "absolute" goals scale with the filtered share; "rate" goals clamp
GOAL_REGISTRY: dict[str, dict] = {
    "rework_cost": {
        "label": "Rework Cost",
        "direction": "lower",
        "unit": "USD",
        "kind": "absolute",
    },
    "release_rate": {
        "label": "Release Rate",
        "direction": "higher",
        "unit": "%",
        "kind": "rate",
    },
    "root_cause_assignment": {
        "label": "Root Cause Assignment",
        "direction": "higher",
        "unit": "%",
        "kind": "rate",
    },
}

# Goal metric labels: (fragments, metric). Any fragment matches.
GOAL_LABEL_RULES: list[tuple[tuple[str, ...], str]] = [
    (("rework cost",), "rework_cost"),
    (("release rate", "released"), "release_rate"),
    (("root cause assignment", "assignment"), "root_cause_assignment"),
    (("rework",), "rework_cost"),
    (("release",), "release_rate"),
]

GOAL_SHEET_KEYWORD = "goal"
GOAL_HORIZONTAL_PAIRS = 12
GOAL_VERTICAL_ROWS = 30

# Goal-status tolerance bands: max(floor, |goal| * fraction)
AT_GOAL_TOLERANCE = (0.2, 0.01)
NEAR_GOAL_TOLERANCE = (1.0, 0.05)

# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------
TIME_GRANULARITIES = ("day", "week", "month")
DEFAULT_GRANULARITY = "month"
TOP_CAUSES = 10
DEFECT_DRIVER_ROWS = 10
DEFECT_DRIVER_SORTS = ("cases", "cost", "lag")

# Seconds a message stays visible, per severity
MESSAGE_DISPLAY_SECONDS: dict[str, int] = {
    "info": 4,
    "success": 4,
    "error": 10,
}

# ---------------------------------------------------------------------------
# Insights service
# ---------------------------------------------------------------------------
INSIGHTS_ENDPOINT = os.environ.get("REWORK_INSIGHTS_URL")
INSIGHTS_HEALTH_ENDPOINT = os.environ.get("REWORK_INSIGHTS_HEALTH_URL")
INSIGHTS_TIMEOUT_SECONDS = 8.0
MAX_INSIGHTS = 3
