import logging
from typing import Dict, List, Optional, Tuple, Any

from config import STORAGE_KEYS
from models.entities import Phase, Task

logger = logging.getLogger(__name__)


class CacheMixin:
    """Offline mirror of the per-project board lists.

    Both keys hold a JSON object keyed by project id, so one project's write
    never clobbers another's.
    """

    async def save_project_cache(
        self, project_id: str, tasks: List[Task], phases: List[Phase]
    ) -> None:
        all_tasks: Dict[str, Any] = await self.get_value(STORAGE_KEYS["PROJECT_TASKS"], {})
        all_phases: Dict[str, Any] = await self.get_value(STORAGE_KEYS["PROJECT_PHASES"], {})
        if not isinstance(all_tasks, dict):
            all_tasks = {}
        if not isinstance(all_phases, dict):
            all_phases = {}
        all_tasks[project_id] = [t.to_dict() for t in tasks]
        all_phases[project_id] = [p.to_dict() for p in phases]
        await self.set_value(STORAGE_KEYS["PROJECT_TASKS"], all_tasks)
        await self.set_value(STORAGE_KEYS["PROJECT_PHASES"], all_phases)

    async def load_project_cache(
        self, project_id: str
    ) -> Optional[Tuple[List[Task], List[Phase]]]:
        """Return the cached (tasks, phases) for a project, or None.

        Entries that fail to rebuild are skipped with a warning; a project
        with neither tasks nor phases cached counts as absent.
        """
        all_tasks = await self.get_value(STORAGE_KEYS["PROJECT_TASKS"], {})
        all_phases = await self.get_value(STORAGE_KEYS["PROJECT_PHASES"], {})
        raw_tasks = all_tasks.get(project_id) if isinstance(all_tasks, dict) else None
        raw_phases = all_phases.get(project_id) if isinstance(all_phases, dict) else None
        if raw_tasks is None and raw_phases is None:
            return None

        tasks: List[Task] = []
        for d in raw_tasks or []:
            try:
                tasks.append(Task.from_dict(d))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping cached task for project {project_id}: {e}")
        phases: List[Phase] = []
        for d in raw_phases or []:
            try:
                phases.append(Phase.from_dict(d))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping cached phase for project {project_id}: {e}")
        return tasks, phases

    async def clear_project_cache(self, project_id: str) -> None:
        for key in (STORAGE_KEYS["PROJECT_TASKS"], STORAGE_KEYS["PROJECT_PHASES"]):
            stored = await self.get_value(key, {})
            if isinstance(stored, dict) and project_id in stored:
                del stored[project_id]
                await self.set_value(key, stored)
