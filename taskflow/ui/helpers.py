import flet as ft
from typing import Optional

from config import COLORS, SNACK_DURATION_MS, NotificationLevel
from events import AppEvent, Notification, event_bus, Subscription

LEVEL_STYLES = {
    NotificationLevel.INFO: (ft.Icons.INFO_OUTLINE, COLORS["card"]),
    NotificationLevel.SUCCESS: (ft.Icons.CHECK_CIRCLE_OUTLINE, COLORS["success"]),
    NotificationLevel.ERROR: (ft.Icons.ERROR_OUTLINE, COLORS["danger"]),
}


def accent_btn(text: str, on_click, icon: Optional[str] = None) -> ft.Button:
    return ft.Button(
        text,
        icon=icon,
        on_click=on_click,
        bgcolor=COLORS["accent"],
        color=COLORS["white"],
    )


class SnackService:
    """Transient, dismissible toasts fed by AppEvent.NOTIFY."""

    def __init__(self, page: ft.Page) -> None:
        self.page = page
        self.snack = ft.SnackBar(
            content=ft.Text(""),
            duration=SNACK_DURATION_MS,
            show_close_icon=True,
        )
        page.overlay.append(self.snack)
        self._subscription: Optional[Subscription] = event_bus.subscribe(
            AppEvent.NOTIFY, self.on_notify
        )

    def on_notify(self, notification: Notification) -> None:
        self.show(notification.message, notification.level)

    def show(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        icon, bgcolor = LEVEL_STYLES[level]
        self.snack.content = ft.Row(
            [ft.Icon(icon, color=COLORS["white"], size=18), ft.Text(message, color=COLORS["white"])],
            spacing=8,
        )
        self.snack.bgcolor = bgcolor
        self.snack.open = True
        self.page.update()

    def dispose(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
