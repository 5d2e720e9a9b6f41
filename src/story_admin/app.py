from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.worker import Worker, WorkerState
from textual.widgets import Header, Static

from .config import (
    SESSION_PATH,
    UI_DEFAULTS,
    load_config,
    resolve_settings,
    save_config,
)
from .screens import DashboardScreen, LoginScreen
from .services.auth import AuthService
from .services.stories import StoryService
from .services.unsplash import UnsplashClient
from .storage import JsonFileStorage
from .stores.image_search import ImageSearchStore
from .stores.moderation import ModerationStore
from .stores.session import LIGHT_MODE, SessionStore

logger = logging.getLogger("story_admin")


class StoryAdminApp(App):
    TITLE = "Story Admin"
    SUB_TITLE = "Moderation console"

    CSS = """
    Screen { background: $surface; color: $text; }
    Header { background: $primary; color: $text; }
    Footer { background: $primary-darken-1; color: $text; }
    .pane-title { text-style: bold; padding: 1 1 0 1; }
    .form { width: 60; height: auto; margin: 2 4; padding: 1 2; border: round $primary; }
    .form-title { text-style: bold; padding-bottom: 1; }
    .form-buttons { height: auto; padding-top: 1; }
    .form-buttons Button { margin-right: 1; }
    #cards { height: auto; padding: 1; }
    .count-card { width: 1fr; height: auto; margin: 0 1; padding: 1 2; border: round $accent; }
    .card-title { text-style: bold; }
    .card-count { text-style: bold; color: $accent; padding: 1 0; }
    .card-caption { color: $text-muted; }
    ListView { border: none; height: 1fr; }
    ListItem { padding: 0 1; }
    ListItem:hover { background: $primary-lighten-2; }
    ListView > ListItem.--highlighted { background: $accent; color: $text; }
    ListItem.selected .story-marker { color: $success; text-style: bold; }
    .story-row { height: 1; }
    .story-marker { width: 4; }
    .story-title { width: 1fr; }
    .story-author { width: 24; color: $text-muted; }
    .story-date { width: 12; color: $text-muted; }
    #list-summary { padding: 0 1; color: $text-muted; }
    #story-scroll { padding: 1 2; }
    #story-meta { color: $text-muted; padding-bottom: 1; }
    #content { height: 16; }
    StatusBar { dock: bottom; height: 1; padding: 0 1; background: $primary-darken-2; }
    #dialog { width: 80; height: auto; max-height: 90%; padding: 1 2; border: thick $accent; background: $surface; }
    .dialog-title { text-style: bold; padding-bottom: 1; }
    .dialog-buttons { height: auto; padding-top: 1; }
    .dialog-buttons Button { margin-right: 1; }
    ConfirmScreen, ImagePickerScreen { align: center middle; }
    #images-list { height: 20; }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit"),
        Binding("ctrl+l", "logout", "Logout", show=False),
    ]

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        theme: Optional[str] = None,
        session: Optional[SessionStore] = None,
        moderation: Optional[ModerationStore] = None,
        images: Optional[ImageSearchStore] = None,
        auth_service: Optional[AuthService] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.config = config if config is not None else resolve_settings(load_config())
        self._theme_name = theme or self.config.get("theme") or "textual-dark"
        base_url = self.config["api_base_url"]

        self.session = session or SessionStore(JsonFileStorage(SESSION_PATH))
        self.auth_service = auth_service or AuthService(
            base_url, token_provider=self.session.token
        )
        if self.session.auth_service is None:
            self.session.auth_service = self.auth_service
        self.session.on_login = self.set_color_mode

        self.moderation = moderation or ModerationStore(
            StoryService(base_url, token_provider=self.session.token),
            page_size=self.config["page_size"],
        )
        self.images = images or ImageSearchStore(
            UnsplashClient(self.config.get("unsplash_access_key", "")),
            app_name=self.config.get("app_name") or "story_admin",
        )

    @property
    def theme_name(self) -> str:
        return self._theme_name

    def get_keybinding_style(self) -> str:
        """Return the appropriate keybinding style for the current theme."""
        return "$accent"

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Loading...", classes="pane-title")

    def on_mount(self) -> None:
        self.theme = self._theme_name
        self.show_home()

    def show_home(self) -> None:
        """Route to the dashboard when signed in, otherwise to the login form."""
        while len(self.screen_stack) > 1:
            self.pop_screen()
        if self.session.is_authenticated:
            logger.info("Showing dashboard for %s", self.session.admin.email)
            self.push_screen(DashboardScreen())
        else:
            self.push_screen(LoginScreen())

    def set_color_mode(self, mode: str) -> None:
        """Called by the session store after a successful login."""
        theme = UI_DEFAULTS["light_theme"] if mode == LIGHT_MODE else self._theme_name
        if threading.current_thread() is threading.main_thread():
            self._apply_theme(theme)
        else:
            self.call_from_thread(self._apply_theme, theme)

    def _apply_theme(self, theme: str) -> None:
        self._theme_name = theme
        self.theme = theme
        stored = load_config()
        stored["theme"] = theme
        save_config(stored)

    def action_logout(self) -> None:
        self.run_worker(self.session.logout, name="logout", thread=True)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "logout":
            return
        if event.state in (WorkerState.PENDING, WorkerState.RUNNING):
            return
        if event.state is WorkerState.ERROR:
            logger.error("Logout worker failed: %s", event.worker.error)
        self.moderation.reset()
        self.images.clear_images()
        self.notify("Logged out")
        self.show_home()
