"""Application configuration - single source of truth for all constants.

Contains enums (TaskStatus, GroupBy, StageId, ViewType), storage keys, default
phases, colors and API settings. Import from here instead of hardcoding values
elsewhere to ensure consistency across the app.
"""
import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

# A missing .env is fine, the process environment still applies
load_dotenv(Path(__file__).parent / ".env")


class TaskStatus(Enum):
    """Enum for task workflow statuses."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    READY = "ready"
    DONE = "done"
    COMPLETED = "completed"
    IN_REVIEW = "in-review"
    NEW = "new"


class GroupBy(Enum):
    """Enum for board grouping keys."""
    NONE = "none"
    STATUS = "status"
    ASSIGNEE = "assignee"
    PHASE = "phase"
    SPRINT = "sprint"


class StageId(Enum):
    """Canonical deal pipeline stages."""
    NEW = "new"
    QUALIFYING = "qualifying"
    REQUIREMENTS = "requirements"
    VALUE_PROPOSITION = "value_proposition"
    NEGOTIATION = "negotiation"
    READY_TO_CLOSE = "ready_to_close"
    CLOSED_WON = "closed_won"


class ViewType(Enum):
    """Enum for workspace views."""
    LIST = "list"
    BOARD = "board"
    GANTT = "gantt"
    MIND_MAP = "mind-map"
    WORKLOAD = "workload"


class NotificationLevel(Enum):
    """Severity of a transient notification."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


# ============================================================================
# Remote API
# ============================================================================

API_BASE_URL = os.getenv("TASKFLOW_API_BASE_URL", "") or "http://localhost:5001/api"
API_TIMEOUT_SECONDS = float(os.getenv("TASKFLOW_API_TIMEOUT", "") or 30)
API_TOKEN = os.getenv("TASKFLOW_API_TOKEN", "")

# ============================================================================
# Local storage
# ============================================================================

DEFAULT_DB_FILENAME = "taskflow.db"

STORAGE_KEYS = {
    "PROJECT_PHASES": "taskflow_project_phases",
    "PROJECT_TASKS": "taskflow_project_tasks",
    "VISIBLE_VIEWS": "taskflow_visible_views",
    "SIDEBAR_COLLAPSED": "taskflow_sidebar_collapsed",
    "ACTIVE_VIEW": "taskflow_active_view",
    "GROUP_BY": "taskflow_group_by",
}

DIALOG_GEOMETRY_KEY_PREFIX = "taskflow_dialog_geometry:"

# ============================================================================
# Board defaults
# ============================================================================

NO_PHASE_LABEL = "No Phase"
UNASSIGNED_LABEL = "Unassigned"
NO_SPRINT_LABEL = "No Sprint"
ALL_TASKS_LABEL = "All Tasks"
UNKNOWN_LABEL = "Unknown"
COPY_SUFFIX = " (Copy)"

DEFAULT_PHASES = [
    {"name": "Phase 1 - Strategy", "color": "#0394ff"},
    {"name": "Phase 2 - Design", "color": "#7c66d9"},
    {"name": "Phase 3 - Development", "color": "#ff6b6b"},
    {"name": "Phase 4 - Execution", "color": "#51cf66"},
]

DEFAULT_VISIBLE_VIEWS = [v.value for v in ViewType]
DEFAULT_VIEW = ViewType.LIST
DEFAULT_GROUP_BY = GroupBy.PHASE
DEFAULT_CURRENCY = "VND"

# ============================================================================
# Dialogs
# ============================================================================

DIALOG_DEFAULT_WIDTH = 1200
DIALOG_DEFAULT_HEIGHT = 750
DIALOG_MIN_WIDTH = 900
DIALOG_MIN_HEIGHT = 600

SNACK_DURATION_MS = 2000

STATUS_COLORS = {
    TaskStatus.TODO: "#838a9c",
    TaskStatus.IN_PROGRESS: "#0ea5e9",
    TaskStatus.READY: "#a78bfa",
    TaskStatus.DONE: "#10b981",
    TaskStatus.IN_REVIEW: "#f59e0b",
    TaskStatus.COMPLETED: "#22c55e",
    TaskStatus.NEW: "#6366f1",
}

COLOR_PALETTE = [
    "#0394ff",  # Blue
    "#7c66d9",  # Purple
    "#ec4899",  # Pink
    "#f59e0b",  # Orange
    "#10b981",  # Green
    "#ef4444",  # Red
    "#06b6d4",  # Cyan
    "#8b5cf6",  # Violet
    "#f97316",  # Dark orange
    "#14b8a6",  # Teal
]

COLORS = {
    "bg": "#1f2330",
    "card": "#292d39",
    "border": "#3d4457",
    "accent": "#0394ff",
    "danger": "#ff6b6b",
    "success": "#10b981",
    "muted": "#838a9c",
    "white": "white",
}
