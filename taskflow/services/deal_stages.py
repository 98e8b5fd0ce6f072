from typing import Any, Dict, List

from config import StageId

# Pipeline order as shown on the deals board
PIPELINE_STAGES: List[StageId] = [
    StageId.READY_TO_CLOSE,
    StageId.NEW,
    StageId.QUALIFYING,
    StageId.REQUIREMENTS,
    StageId.VALUE_PROPOSITION,
    StageId.NEGOTIATION,
    StageId.CLOSED_WON,
]

STAGE_LABELS: Dict[StageId, str] = {
    StageId.READY_TO_CLOSE: "Ready To Close",
    StageId.NEW: "New",
    StageId.QUALIFYING: "Qualifying",
    StageId.REQUIREMENTS: "Requirements Gathering",
    StageId.VALUE_PROPOSITION: "Value Proposition",
    StageId.NEGOTIATION: "Negotiation",
    StageId.CLOSED_WON: "Closed Won",
}

STAGE_COLORS: Dict[StageId, str] = {
    StageId.READY_TO_CLOSE: "#22c55e",
    StageId.NEW: "#f97316",
    StageId.QUALIFYING: "#14b8a6",
    StageId.REQUIREMENTS: "#3b82f6",
    StageId.VALUE_PROPOSITION: "#eab308",
    StageId.NEGOTIATION: "#ec4899",
    StageId.CLOSED_WON: "#1e3a5f",
}

# Keys are folded with _fold(); canonical ids, display labels and the
# legacy CRM names all land here.
_STAGE_ALIASES: Dict[str, StageId] = {
    "new": StageId.NEW,
    "lead": StageId.NEW,
    "qualifying": StageId.QUALIFYING,
    "qualified": StageId.QUALIFYING,
    "requirements": StageId.REQUIREMENTS,
    "requirements_gathering": StageId.REQUIREMENTS,
    "value_proposition": StageId.VALUE_PROPOSITION,
    "proposal": StageId.VALUE_PROPOSITION,
    "negotiation": StageId.NEGOTIATION,
    "ready_to_close": StageId.READY_TO_CLOSE,
    "closed_won": StageId.CLOSED_WON,
    "won": StageId.CLOSED_WON,
}


def _fold(value: str) -> str:
    return "_".join(value.strip().lower().replace("-", " ").replace("_", " ").split())


def normalize_stage(value: Any) -> StageId:
    """Map any external stage value onto a canonical StageId.

    Total over every input: unknown strings, None and non-strings fall back
    to StageId.NEW so a deal always lands in a column.
    """
    if isinstance(value, StageId):
        return value
    if not isinstance(value, str):
        return StageId.NEW
    return _STAGE_ALIASES.get(_fold(value), StageId.NEW)


def stage_label(stage: StageId) -> str:
    return STAGE_LABELS[stage]


def stage_color(stage: StageId) -> str:
    return STAGE_COLORS[stage]
