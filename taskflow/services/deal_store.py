"""Deals pipeline board.

Same contract as the task board: local edits first, backend second, revert
and toast on rejection. Aggregates are always computed over the current
search-filtered list, matching what the columns show.
"""
import logging
from typing import Any, Dict, List, Optional

from config import StageId
from events import AppEvent, Notification, event_bus
from models.adapters import DEAL_FIELD_TO_API, coerce_deal_value, deal_from_api, deal_update_payload
from models.entities import Deal
from services.api_client import ApiError, DealsApi
from services.deal_stages import PIPELINE_STAGES
from services.optimistic import attr_accessors, optimistic_set, run_optimistic
from services.stats import StatsService

logger = logging.getLogger(__name__)


class DealStore:
    def __init__(self, deals_api: DealsApi, stats: Optional[StatsService] = None) -> None:
        self.deals_api = deals_api
        self.stats = stats or StatsService()
        self.deals: List[Deal] = []
        self.search_query = ""
        self.load_error: Optional[str] = None

    def _report(self, action: str):
        def report(error: ApiError) -> None:
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"{action}: {error}"))
        return report

    def find(self, deal_id: str) -> Optional[Deal]:
        return next((d for d in self.deals if d.id == deal_id), None)

    async def load(self) -> bool:
        """Replace the deal list from the backend. Failure leaves it empty."""
        try:
            raw = await self.deals_api.get_all()
        except ApiError as e:
            logger.warning(f"Loading deals failed: {e}")
            self.deals = []
            self.load_error = str(e)
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"Failed to load deals: {e}"))
            event_bus.emit(AppEvent.DEALS_LOADED, self.deals)
            return False
        self.deals = [deal_from_api(d) for d in raw]
        self.load_error = None
        event_bus.emit(AppEvent.DEALS_LOADED, self.deals)
        return True

    def set_search(self, query: str) -> None:
        self.search_query = query or ""

    def filtered(self, query: Optional[str] = None) -> List[Deal]:
        """Deals whose name or organization contains the query."""
        needle = (self.search_query if query is None else query).strip().lower()
        if not needle:
            return list(self.deals)
        return [
            d for d in self.deals
            if needle in d.name.lower() or needle in d.organization.lower()
        ]

    def by_stage(self) -> Dict[StageId, List[Deal]]:
        """Every pipeline column, in board order, including empty ones."""
        columns: Dict[StageId, List[Deal]] = {stage: [] for stage in PIPELINE_STAGES}
        for deal in self.filtered():
            columns[deal.stage].append(deal)
        return columns

    def stage_total(self, stage: StageId) -> float:
        return self.stats.stage_total(self.filtered(), stage)

    def closed_won_percent(self) -> int:
        return self.stats.closed_won_percent(self.filtered())

    async def update_field(self, deal_id: str, field_name: str, value: Any) -> bool:
        """Optimistically edit one deal field, e.g. probability.

        Raises:
            ValueError: If field_name cannot be sent to the backend.
        """
        value = coerce_deal_value(field_name, value)
        payload = deal_update_payload(field_name, value)
        deal = self.find(deal_id)
        if deal is None:
            logger.warning(f"update_field: unknown deal {deal_id}")
            return False
        if getattr(deal, field_name) == value:
            return True

        getter, setter = attr_accessors(deal, field_name)
        ok = await optimistic_set(
            getter, setter, value,
            persist=lambda: self.deals_api.update(deal_id, payload),
            on_error=self._report("Failed to update deal"),
        )
        if ok:
            event_bus.emit(AppEvent.DEAL_UPDATED, deal)
        return ok

    async def move_stage(self, deal_id: str, stage: Any) -> bool:
        """Drag a deal card to another pipeline column."""
        return await self.update_field(deal_id, "stage", stage)

    async def add_deal(self, name: str, value: float = 0.0, **fields: Any) -> Optional[Deal]:
        """Create a deal in the ``new`` column and put it first."""
        unknown = set(fields) - set(DEAL_FIELD_TO_API)
        if unknown:
            raise ValueError(f"Unknown deal fields: {', '.join(sorted(unknown))}")
        body: Dict[str, Any] = {}
        for field_name, field_value in {"name": name, "value": value, "stage": StageId.NEW, **fields}.items():
            body.update(deal_update_payload(field_name, field_value))
        try:
            created = await self.deals_api.create(body)
        except ApiError as e:
            logger.warning(f"Creating deal '{name}' failed: {e}")
            event_bus.emit(AppEvent.NOTIFY, Notification.error(f"Failed to create deal: {e}"))
            return None
        deal = deal_from_api(created)
        self.deals.insert(0, deal)
        event_bus.emit(AppEvent.DEAL_UPDATED, deal)
        return deal

    async def remove(self, deal_id: str) -> bool:
        """Delete a deal; a rejected delete puts it back where it was."""
        index = next((i for i, d in enumerate(self.deals) if d.id == deal_id), None)
        if index is None:
            return False
        deal = self.deals[index]
        deals = self.deals

        ok = await run_optimistic(
            apply=lambda: deals.pop(index),
            persist=lambda: self.deals_api.delete(deal_id),
            revert=lambda: deals.insert(min(index, len(deals)), deal),
            on_error=self._report("Failed to delete deal"),
        )
        if ok:
            event_bus.emit(AppEvent.DEAL_DELETED, deal)
        return ok
