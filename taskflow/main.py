import flet as ft
import logging

from api import TaskFlowAPI
from config import COLORS
from core import bootstrap, shutdown
from ui.helpers import SnackService
from ui.pages.board_view import BoardView

logger = logging.getLogger(__name__)


async def main(page: ft.Page) -> None:
    page.title = "TaskFlow"
    page.theme_mode = ft.ThemeMode.DARK
    page.bgcolor = COLORS["bg"]
    page.padding = 20

    services = await bootstrap()
    api = TaskFlowAPI(services)
    snack = SnackService(page)
    view = BoardView(page, snack)

    async def cleanup_all() -> None:
        view.dispose()
        snack.dispose()
        try:
            await shutdown(services)
        except Exception as e:  # Intentionally broad: the window is closing either way
            logger.warning(f"Error during shutdown: {e}")

    def on_close(_e) -> None:
        try:
            page.run_task(cleanup_all)
        except RuntimeError as e:
            logger.debug(f"Could not schedule cleanup (page closing): {e}")

    page.on_close = on_close
    page.add(view.build())

    projects = await api.list_projects()
    if projects:
        await api.open_project(projects[0].id)
    else:
        view.refresh()


if __name__ == "__main__":
    ft.app(target=main)
