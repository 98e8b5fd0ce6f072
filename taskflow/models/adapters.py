"""Boundary between external API payloads and canonical records.

Every payload the backend returns passes through one of the ``*_from_api``
functions right after it is received, so the rest of the app only ever sees
``models.entities`` records. The API is inconsistent about naming (``taskID``
next to ``taskId`` and ``task_id``, ``dealValue`` vs ``value``), so lookups go
through ``_pick`` with every accepted variant listed once, here.

The reverse direction (canonical field -> API field) is used to build partial
update payloads that carry only the changed field.
"""
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Optional

from config import TaskStatus, UNKNOWN_LABEL, DEFAULT_CURRENCY
from models.entities import (
    Assignee,
    Contact,
    Customer,
    Deal,
    Phase,
    Project,
    Task,
    User,
    _parse_date,
)
from services.deal_stages import normalize_stage

_MISSING = object()


def _pick(d: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-None value among the given key variants."""
    for key in keys:
        value = d.get(key, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def _number(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return default


def _safe_date(value: Any) -> Optional[date]:
    try:
        return _parse_date(value)
    except ValueError:
        return None


def _str_id(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def normalize_status(value: Any) -> TaskStatus:
    """Map an external status string onto TaskStatus, defaulting to TODO."""
    if isinstance(value, TaskStatus):
        return value
    if not value:
        return TaskStatus.TODO
    key = str(value).strip().lower().replace("_", "-").replace(" ", "-")
    if key == "to-do":
        key = TaskStatus.TODO.value
    try:
        return TaskStatus(key)
    except ValueError:
        return TaskStatus.TODO


def assignee_from_api(raw: Any, users: Optional[Dict[str, User]] = None) -> Optional[Assignee]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        name = _pick(raw, "name", "fullName", "full_name")
        if not name:
            return None
        return Assignee(
            id=_str_id(_pick(raw, "id", "userID", "userId", "user_id")),
            name=name,
            color=_pick(raw, "color", default="#838a9c"),
            initials=_pick(raw, "initials", default=""),
        )
    # Bare user id
    user = (users or {}).get(str(raw))
    return user.as_assignee() if user else None


def task_from_api(d: Dict[str, Any], users: Optional[Dict[str, User]] = None) -> Task:
    assignee_raw = _pick(d, "assignee")
    if assignee_raw is None:
        assignee_raw = _pick(d, "assigneeID", "assigneeId", "assignee_id")
    assignee = assignee_from_api(assignee_raw, users)
    if assignee is None:
        assignee_name = _pick(d, "assigneeName", "assignee_name")
        if assignee_name:
            assignee = Assignee(name=assignee_name)

    return Task(
        id=str(_pick(d, "taskID", "taskId", "task_id", "id")),
        name=_pick(d, "title", "name", default=""),
        project_id=str(_pick(d, "projectID", "projectId", "project_id", default="")),
        description=_pick(d, "description", default=""),
        status=normalize_status(_pick(d, "status")),
        assignee=assignee,
        due_date=_safe_date(_pick(d, "dueDate", "due_date")),
        start_date=_safe_date(_pick(d, "startDate", "start_date")),
        end_date=_safe_date(_pick(d, "endDate", "end_date")),
        budget=_number(_pick(d, "budget")),
        spent=_number(_pick(d, "spent")),
        estimated_hours=_number(_pick(d, "estimatedHours", "estimated_hours")),
        actual_hours=_number(_pick(d, "actualHours", "actual_hours")),
        progress=_int(_pick(d, "progress"), 0),
        phase_id=_str_id(_pick(d, "phaseID", "phaseId", "phase_id")),
        sprint=_pick(d, "sprint", "sectionName", "section_name", default=""),
        order=_int(_pick(d, "order", "sortOrder", "sort_order"), 0),
        parent_task_id=_str_id(_pick(d, "parentTaskID", "parentTaskId", "parent_task_id")),
    )


def phase_from_api(d: Dict[str, Any], project_id: Optional[str] = None) -> Phase:
    return Phase(
        id=str(_pick(d, "phaseID", "phaseId", "phase_id", "id")),
        project_id=str(_pick(d, "projectID", "projectId", "project_id", default=project_id or "")),
        name=_pick(d, "name", default=UNKNOWN_LABEL),
        color=_pick(d, "color", default="#0394ff"),
        order=_int(_pick(d, "order"), 0),
    )


def deal_from_api(d: Dict[str, Any]) -> Deal:
    return Deal(
        id=str(_pick(d, "dealID", "dealId", "deal_id", "id")),
        name=_pick(d, "dealName", "deal_name", "name", default=""),
        value=_number(_pick(d, "dealValue", "deal_value", "value")),
        currency=_pick(d, "currency", default=DEFAULT_CURRENCY),
        stage=normalize_stage(_pick(d, "stage")),
        organization=_pick(d, "customerName", "customer_name", "organization", default=UNKNOWN_LABEL),
        assignee=_pick(d, "ownerName", "owner_name", "assignedTo", default=UNKNOWN_LABEL),
        probability=_int(_pick(d, "probability"), 0),
        expected_close_date=_safe_date(_pick(d, "expectedCloseDate", "expected_close_date")),
        customer_id=_str_id(_pick(d, "customerID", "customerId", "customer_id")),
        contact_name=_pick(d, "contactName", "contact_name"),
        description=_pick(d, "description"),
        source=_pick(d, "source", "leadSource"),
    )


def project_from_api(d: Dict[str, Any]) -> Project:
    return Project(
        id=str(_pick(d, "projectID", "projectId", "project_id", "id")),
        name=_pick(d, "name", default=UNKNOWN_LABEL),
        description=_pick(d, "description", default=""),
        status=_pick(d, "status", default=""),
        priority=_pick(d, "priority", default=""),
        start_date=_safe_date(_pick(d, "startDate", "start_date")),
        end_date=_safe_date(_pick(d, "endDate", "end_date")),
    )


def customer_from_api(d: Dict[str, Any]) -> Customer:
    return Customer(
        id=str(_pick(d, "customerID", "customerId", "customer_id", "id")),
        name=_pick(d, "customerName", "customer_name", "name", default=UNKNOWN_LABEL),
        code=_pick(d, "customerCode", "customer_code", default=""),
        customer_type=_pick(d, "customerType", "customer_type", default="Company"),
        status=_pick(d, "status", default="Active"),
        email=_pick(d, "email"),
        phone=_pick(d, "phone"),
    )


def contact_from_api(d: Dict[str, Any]) -> Contact:
    full_name = _pick(d, "fullName", "full_name")
    if not full_name:
        first = _pick(d, "firstName", "first_name", default="")
        last = _pick(d, "lastName", "last_name", default="")
        full_name = f"{first} {last}".strip() or UNKNOWN_LABEL
    return Contact(
        id=str(_pick(d, "contactID", "contactId", "contact_id", "id")),
        full_name=full_name,
        customer_id=_str_id(_pick(d, "customerID", "customerId", "customer_id")),
        email=_pick(d, "email"),
        phone=_pick(d, "phone"),
        is_primary=bool(_pick(d, "isPrimary", "is_primary", default=False)),
    )


def user_from_api(d: Dict[str, Any]) -> User:
    return User(
        id=str(_pick(d, "userID", "userId", "user_id", "id")),
        name=_pick(d, "name", "fullName", default=UNKNOWN_LABEL),
        email=_pick(d, "email", default=""),
        role=_pick(d, "role", default=""),
        avatar=_pick(d, "avatar"),
    )


# ============================================================================
# Canonical -> API
# ============================================================================

def _api_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


TASK_FIELD_TO_API: Dict[str, str] = {
    "name": "title",
    "description": "description",
    "status": "status",
    "assignee": "assigneeID",
    "due_date": "dueDate",
    "start_date": "startDate",
    "end_date": "endDate",
    "budget": "budget",
    "spent": "spent",
    "estimated_hours": "estimatedHours",
    "actual_hours": "actualHours",
    "progress": "progress",
    "phase_id": "phaseID",
    "sprint": "sectionName",
    "order": "order",
    "parent_task_id": "parentTaskID",
}

DEAL_FIELD_TO_API: Dict[str, str] = {
    "name": "dealName",
    "value": "dealValue",
    "currency": "currency",
    "stage": "stage",
    "probability": "probability",
    "expected_close_date": "expectedCloseDate",
    "customer_id": "customerID",
    "description": "description",
    "source": "source",
}

_VALUE_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "assignee": lambda a: a.id if a is not None else None,
}


# ============================================================================
# Edited values -> canonical types
# ============================================================================

def _edit_int(value: Any) -> int:
    return int(round(float(value)))


def _edit_percent(value: Any) -> int:
    return max(0, min(100, _edit_int(value)))


def _edit_assignee(value: Any) -> Optional[Assignee]:
    if value is None or isinstance(value, Assignee):
        return value
    assignee = assignee_from_api(value)
    if assignee is None:
        raise ValueError(f"Not an assignee: {value!r}")
    return assignee


_TASK_VALUE_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "name": str,
    "description": lambda v: v or "",
    "status": normalize_status,
    "assignee": _edit_assignee,
    "due_date": _parse_date,
    "start_date": _parse_date,
    "end_date": _parse_date,
    "budget": float,
    "spent": float,
    "estimated_hours": float,
    "actual_hours": float,
    "progress": _edit_percent,
    "phase_id": _str_id,
    "sprint": lambda v: v or "",
    "order": _edit_int,
    "parent_task_id": _str_id,
}

_DEAL_VALUE_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "value": float,
    "stage": normalize_stage,
    "probability": _edit_percent,
    "expected_close_date": _parse_date,
    "customer_id": _str_id,
}


def _coerce(coercers: Dict[str, Callable[[Any], Any]], field_name: str, value: Any) -> Any:
    convert = coercers.get(field_name)
    if convert is None:
        return value
    try:
        return convert(value)
    except TypeError as e:
        raise ValueError(f"Invalid value for '{field_name}': {value!r}") from e


def coerce_task_value(field_name: str, value: Any) -> Any:
    """Bring an edited value into the type Task keeps for field_name.

    Accepts the backend's spellings too ("done", "2026-03-01", "12.5").

    Raises:
        ValueError: If the value cannot be converted.
    """
    return _coerce(_TASK_VALUE_COERCERS, field_name, value)


def coerce_deal_value(field_name: str, value: Any) -> Any:
    """Same as coerce_task_value, for Deal fields."""
    return _coerce(_DEAL_VALUE_COERCERS, field_name, value)


def _payload(mapping: Dict[str, str], field_name: str, value: Any) -> Dict[str, Any]:
    if field_name not in mapping:
        raise ValueError(f"Field '{field_name}' cannot be sent to the API")
    convert = _VALUE_CONVERTERS.get(field_name, _api_value)
    return {mapping[field_name]: convert(value)}


def task_update_payload(field_name: str, value: Any) -> Dict[str, Any]:
    """Build a partial update body carrying only one task field."""
    return _payload(TASK_FIELD_TO_API, field_name, value)


def deal_update_payload(field_name: str, value: Any) -> Dict[str, Any]:
    """Build a partial update body carrying only one deal field."""
    return _payload(DEAL_FIELD_TO_API, field_name, value)


def task_create_payload(task: Task) -> Dict[str, Any]:
    """Full create body for a task, in API field names."""
    body: Dict[str, Any] = {"projectID": task.project_id}
    for field_name in TASK_FIELD_TO_API:
        value = getattr(task, field_name)
        if value is None:
            continue
        body.update(task_update_payload(field_name, value))
    return body
