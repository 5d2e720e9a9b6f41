from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import ListItem, Static
from rich.text import Text

from .datamodels import StatusCategory, Story, UnsplashImage


# --- UI Widgets ---
class StoryListItem(ListItem):
    def __init__(self, story: Story, selectable: bool = False, selected: bool = False):
        super().__init__()
        self.story = story
        self.selectable = selectable
        self.selected = selected

    def _marker(self) -> str:
        if not self.selectable:
            return ""
        return "[x] " if self.selected else "[ ] "

    def compose(self) -> ComposeResult:
        submitted = self.story.submitted_at
        with Horizontal(classes="story-row"):
            yield Static(Text(self._marker()), classes="story-marker")
            yield Static(Text(self.story.title or "(untitled)"), classes="story-title")
            yield Static(Text(self.story.user_name), classes="story-author")
            yield Static(
                submitted.strftime("%Y-%m-%d") if submitted else "",
                classes="story-date",
            )

    def set_selected(self, selected: bool) -> None:
        self.selected = selected
        self.set_class(selected, "selected")
        self.query_one(".story-marker", Static).update(Text(self._marker()))


class ImageListItem(ListItem):
    def __init__(self, image: UnsplashImage):
        super().__init__()
        self.image = image

    def compose(self) -> ComposeResult:
        description = self.image.alt_description or "(no description)"
        yield Static(Text.assemble(description, (f" by {self.image.author_name}", "dim")))


class CountCard(Vertical):
    count = reactive(0)

    def __init__(self, category: StatusCategory, **kwargs):
        super().__init__(classes="count-card", **kwargs)
        self.category = category

    def compose(self) -> ComposeResult:
        yield Static(self.category.label, classes="card-title")
        yield Static("0", classes="card-count")
        yield Static("Stories Count", classes="card-caption")

    def watch_count(self, count: int) -> None:
        if not self.is_mounted:
            return
        self.query_one(".card-count", Static).update(str(count))
        self.query_one(".card-caption", Static).update(
            "Story Count" if count == 1 else "Stories Count"
        )


class StatusBar(Static):
    loading_status = reactive("")
    keybinding_hint = reactive("")

    def on_mount(self) -> None:
        self.update_display()

    def set_keybindings(self, hint: str) -> None:
        """Set the keybinding hint text."""
        self.keybinding_hint = hint

    def update_display(self) -> None:
        status_items = []
        if self.loading_status:
            status_items.append(self.loading_status)

        if self.keybinding_hint:
            status_items.append(self.keybinding_hint)

        self.update(" | ".join(status_items))

    def watch_loading_status(self, loading_status: str) -> None:
        self.update_display()

    def watch_keybinding_hint(self, keybinding_hint: str) -> None:
        self.update_display()


class ErrorMessage(Static):
    def __init__(self, message: str, **kwargs):
        super().__init__(Text(message, style="bold red"), **kwargs)
