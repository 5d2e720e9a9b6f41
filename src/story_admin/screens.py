from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen, Screen
from textual.worker import Worker, WorkerState
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    ListView,
    LoadingIndicator,
    Static,
    TextArea,
)
from rich.text import Text

from .config import UI_DEFAULTS
from .datamodels import StatusCategory
from .stores.password import ChangePasswordForm, PasswordResetFlow, ResetStep
from .widgets import (
    CountCard,
    ErrorMessage,
    ImageListItem,
    StatusBar,
    StoryListItem,
)

logger = logging.getLogger("story_admin")


def _finished_without_success(event: Worker.StateChanged) -> bool:
    return event.state in (WorkerState.ERROR, WorkerState.CANCELLED)


class ConfirmScreen(ModalScreen[bool]):
    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("n,escape", "cancel", "No"),
    ]

    def __init__(self, title: str, message: str, confirm_label: str = "Confirm"):
        super().__init__()
        self.dialog_title = title
        self.message = message
        self.confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self.dialog_title, classes="dialog-title")
            yield Static(Text(self.message))
            with Horizontal(classes="dialog-buttons"):
                yield Button(self.confirm_label, variant="primary", id="confirm")
                yield Button("Cancel", id="cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class ImagePickerScreen(ModalScreen[Optional[str]]):
    """Search stock photos and return the chosen URL with attribution."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label("Select Image", classes="dialog-title")
            yield Input(placeholder="Search for images...", id="image-query")
            yield LoadingIndicator(id="images-loading")
            yield Static("", id="images-status")
            yield ListView(id="images-list")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Cancel", id="cancel")

    def on_mount(self) -> None:
        # Start clean; never show results from a previous picker session.
        self.app.images.clear_images()
        self.query_one("#images-loading", LoadingIndicator).display = False
        self.query_one("#image-query", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        query = event.value
        self.query_one("#images-loading", LoadingIndicator).display = True
        self.run_worker(
            lambda: self.app.images.search_images(query),
            name="image_search",
            thread=True,
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "image_search" or not self.is_mounted:
            return
        if event.state in (WorkerState.PENDING, WorkerState.RUNNING):
            return
        self.query_one("#images-loading", LoadingIndicator).display = False
        self._render_images()

    def _render_images(self) -> None:
        store = self.app.images
        status = self.query_one("#images-status", Static)
        images_list = self.query_one("#images-list", ListView)
        images_list.clear()
        if store.error:
            status.update(Text(store.error, style="bold red"))
            return
        if store.has_searched and not store.unsplash_images:
            status.update(Text(f'No images found for "{store.search_query}"'))
            return
        status.update(Text(f"{len(store.unsplash_images)} images"))
        for image in store.unsplash_images:
            images_list.append(ImageListItem(image))
        images_list.focus()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, ImageListItem):
            url = self.app.images.select_image(event.item.image.regular_url)
            self.app.images.clear_images()
            self.dismiss(url)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.action_cancel()

    def action_cancel(self) -> None:
        self.app.images.clear_images()
        self.dismiss(None)


class LoginScreen(Screen):
    BINDINGS = [Binding("ctrl+q", "app.quit", "Quit")]

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="login-form", classes="form"):
            yield Label("Admin Login", classes="form-title")
            yield Input(placeholder="Email", id="email")
            yield Input(placeholder="Password", password=True, id="password")
            yield Static("", id="login-error")
            with Horizontal(classes="form-buttons"):
                yield Button("Login", variant="primary", id="login")
                yield Button("Forgot password?", id="forgot")
            yield LoadingIndicator(id="login-loading")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Login"
        self.query_one("#login-loading", LoadingIndicator).display = False
        self.query_one("#email", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "email":
            self.query_one("#password", Input).focus()
        else:
            self.submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "login":
            self.submit()
        elif event.button.id == "forgot":
            self.app.push_screen(ForgotPasswordScreen())

    def submit(self) -> None:
        email = self.query_one("#email", Input).value
        password = self.query_one("#password", Input).value
        self.query_one("#login-loading", LoadingIndicator).display = True
        self.query_one("#login-error", Static).update("")
        self.run_worker(
            lambda: self.app.session.sign_in(email, password),
            name="login",
            thread=True,
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "login" or not self.is_mounted:
            return
        if event.state is WorkerState.SUCCESS:
            self.query_one("#login-loading", LoadingIndicator).display = False
            if event.worker.result:
                self.app.notify("Login successful")
                self.app.show_home()
            else:
                error = self.app.session.error or "Login failed"
                self.query_one("#login-error", Static).update(Text(error, style="bold red"))
        elif _finished_without_success(event):
            self.query_one("#login-loading", LoadingIndicator).display = False
            logger.error("Login worker failed: %s", event.worker.error)
            self.query_one("#login-error", Static).update(
                Text("Login failed. Please try again.", style="bold red")
            )


class ForgotPasswordScreen(Screen):
    BINDINGS = [Binding("escape", "app.pop_screen", "Back")]

    STEP_PROMPTS = {
        ResetStep.EMAIL: ("Reset Password", "Email", "Send OTP"),
        ResetStep.OTP: ("Enter OTP", "OTP", "Verify OTP"),
        ResetStep.NEW_PASSWORD: ("New Password", "New password", "Reset Password"),
    }

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(classes="form"):
            yield Label("", id="step-title", classes="form-title")
            yield Input(id="primary")
            yield Input(placeholder="Confirm new password", password=True, id="confirm")
            yield Static("", id="step-error")
            with Horizontal(classes="form-buttons"):
                yield Button("", variant="primary", id="next")
                yield Button("Back", id="back")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Forgot Password"
        self.flow = PasswordResetFlow(self.app.auth_service)
        self.render_step()

    def render_step(self) -> None:
        title, placeholder, button = self.STEP_PROMPTS[self.flow.step]
        self.query_one("#step-title", Label).update(title)
        primary = self.query_one("#primary", Input)
        primary.value = ""
        primary.placeholder = placeholder
        primary.password = self.flow.step is ResetStep.NEW_PASSWORD
        confirm = self.query_one("#confirm", Input)
        confirm.value = ""
        confirm.display = self.flow.step is ResetStep.NEW_PASSWORD
        self.query_one("#next", Button).label = button
        self.query_one("#step-error", Static).update("")
        primary.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "primary" and self.flow.step is ResetStep.NEW_PASSWORD:
            self.query_one("#confirm", Input).focus()
        else:
            self.advance()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "next":
            self.advance()
        elif event.button.id == "back":
            if self.flow.step is ResetStep.EMAIL:
                self.app.pop_screen()
            else:
                self.flow.back()
                self.render_step()

    def advance(self) -> None:
        value = self.query_one("#primary", Input).value
        confirm = self.query_one("#confirm", Input).value
        step = self.flow.step
        if step is ResetStep.EMAIL:
            work = lambda: self.flow.request_otp(value)
        elif step is ResetStep.OTP:
            work = lambda: self.flow.verify_otp(value)
        else:
            work = lambda: self.flow.reset_password(value, confirm)
        self.run_worker(work, name="reset_step", thread=True)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "reset_step" or not self.is_mounted:
            return
        if event.state is WorkerState.SUCCESS:
            if not event.worker.result:
                self.query_one("#step-error", Static).update(
                    Text(self.flow.error or "Request failed", style="bold red")
                )
                return
            if self.flow.message:
                self.app.notify(self.flow.message)
            if self.flow.step is ResetStep.DONE:
                self.app.pop_screen()
            else:
                self.render_step()
        elif _finished_without_success(event):
            logger.error("Password reset worker failed: %s", event.worker.error)


class ChangePasswordScreen(Screen):
    BINDINGS = [Binding("escape", "app.pop_screen", "Back")]

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(classes="form"):
            yield Label("Change Password", classes="form-title")
            yield Input(placeholder="Old password", password=True, id="old")
            yield Input(placeholder="New password", password=True, id="new")
            yield Input(placeholder="Confirm new password", password=True, id="confirm")
            yield Static("", id="change-error")
            with Horizontal(classes="form-buttons"):
                yield Button("Change Password", variant="primary", id="submit")
                yield Button("Cancel", id="cancel")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Change Password"
        self.form = ChangePasswordForm(self.app.auth_service)
        self.query_one("#old", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "submit":
            self.submit()
        else:
            self.app.pop_screen()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.submit()

    def submit(self) -> None:
        old = self.query_one("#old", Input).value
        new = self.query_one("#new", Input).value
        confirm = self.query_one("#confirm", Input).value
        self.run_worker(
            lambda: self.form.submit(old, new, confirm), name="change_password", thread=True
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "change_password" or not self.is_mounted:
            return
        if event.state is WorkerState.SUCCESS:
            if event.worker.result:
                self.app.notify(self.form.message or "Password changed successfully!")
                self.app.pop_screen()
            else:
                self.query_one("#change-error", Static).update(
                    Text(self.form.error or "Failed to change password.", style="bold red")
                )
        elif _finished_without_success(event):
            logger.error("Change password worker failed: %s", event.worker.error)


class DashboardScreen(Screen):
    BINDINGS = [
        Binding("1", "open_list('pending')", "Pending"),
        Binding("2", "open_list('published')", "Approved"),
        Binding("3", "open_list('rejected')", "Rejected"),
        Binding("r", "refresh", "Refresh"),
        Binding("c", "change_password", "Change password"),
        Binding("l", "app.logout", "Logout"),
        Binding("q", "app.quit", "Quit"),
    ]

    def __init__(self):
        super().__init__()
        self._resumed = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label("Dashboard", classes="pane-title")
        with Horizontal(id="cards"):
            for category in StatusCategory:
                yield CountCard(category, id=f"card-{category.value}")
        yield LoadingIndicator(id="dashboard-loading")
        yield Static("", id="dashboard-error")
        yield StatusBar()
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Dashboard"
        admin = self.app.session.admin
        self.sub_title = admin.display_name or admin.email if admin else ""
        keybinding_style = self.app.get_keybinding_style()
        self.query_one(StatusBar).set_keybindings(
            f"[b {keybinding_style}]1/2/3[/] open list, [b {keybinding_style}]r[/] refresh"
        )
        self.load_counts()

    def on_screen_resume(self) -> None:
        # The first resume comes with the initial push; on_mount already loads.
        if self._resumed and self.is_mounted:
            self.load_counts()
        self._resumed = True

    def load_counts(self) -> None:
        self.query_one("#dashboard-loading", LoadingIndicator).display = True
        self.query_one("#dashboard-error", Static).update("")
        self.run_worker(self.app.moderation.fetch_story_counts, name="counts_loader", thread=True)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "counts_loader" or not self.is_mounted:
            return
        if event.state in (WorkerState.PENDING, WorkerState.RUNNING):
            return
        self.query_one("#dashboard-loading", LoadingIndicator).display = False
        store = self.app.moderation
        if store.error or event.state is not WorkerState.SUCCESS:
            message = store.error or "Failed to fetch stories info. Please try again."
            self.query_one("#dashboard-error", Static).update(
                Text(f"{message} Press r to retry.", style="bold red")
            )
            return
        counts = store.story_counts
        if counts is None:
            return
        for category in StatusCategory:
            card = self.query_one(f"#card-{category.value}", CountCard)
            card.count = counts.for_category(category)

    def action_refresh(self) -> None:
        self.load_counts()

    def action_open_list(self, category: str) -> None:
        # Lists always start from a fresh fetch when entered from here.
        self.app.moderation.clear_cache(category)
        self.app.push_screen(StoryListScreen(StatusCategory.parse(category)))

    def action_change_password(self) -> None:
        self.app.push_screen(ChangePasswordScreen())


class StoryListScreen(Screen):
    BINDINGS = [
        Binding("escape,q", "app.pop_screen", "Back"),
        Binding("r", "refresh", "Refresh"),
        Binding("n,right", "next_page", "Next page"),
        Binding("p,left", "prev_page", "Prev page"),
        Binding("space", "toggle_select", "Select"),
        Binding("ctrl+a", "select_all", "Select all"),
        Binding("a", "approve_selected", "Approve"),
        Binding("x", "reject_selected", "Reject"),
        Binding("/", "focus_search", "Search"),
    ]

    def __init__(self, category: StatusCategory):
        super().__init__()
        self.category = category
        self.page = 1
        self.search_text = ""
        self._resumed = False

    @property
    def is_pending(self) -> bool:
        return self.category is StatusCategory.PENDING

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Search stories... (enter to search, empty to clear)", id="search")
        yield Static("", id="list-summary")
        yield ErrorMessage("", id="list-error")
        yield LoadingIndicator(id="list-loading")
        yield ListView(id="stories-list")
        yield StatusBar()
        yield Footer()

    def on_mount(self) -> None:
        self.title = self.category.label
        self.query_one("#list-error", ErrorMessage).display = False
        keybinding_style = self.app.get_keybinding_style()
        hint = f"[b {keybinding_style}]n/p[/] page, [b {keybinding_style}]enter[/] open"
        if self.is_pending:
            keybindings_text = self.app.config.get("ui", {}).get(
                "statusbar_keybindings", UI_DEFAULTS["statusbar_keybindings"]
            )
            hint = keybindings_text.format(color=keybinding_style) + ", " + hint
        self.query_one(StatusBar).set_keybindings(hint)
        self.load_page(1)

    def on_screen_resume(self) -> None:
        # Back from the detail view: edits were patched into the store.
        if self._resumed and self.is_mounted:
            self.render_stories()
        self._resumed = True

    def load_page(self, page: int, force: bool = False) -> None:
        store = self.app.moderation
        self.page = page
        self.query_one("#list-loading", LoadingIndicator).display = True
        self.query_one(StatusBar).loading_status = f"Loading {self.category.label}..."
        query = self.search_text
        if query:
            work = lambda: store.search_stories(query, self.category, page)
        else:
            work = lambda: store.fetch_stories(self.category, page, force_refresh=force)
        self.run_worker(work, name="stories_loader", thread=True)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        name = getattr(event.worker, "name", None)
        # The screen may have been dismissed while the request was in flight.
        if not self.is_mounted:
            return
        if event.state is WorkerState.SUCCESS:
            if name == "stories_loader":
                self.render_stories()
            elif name == "moderate":
                self._handle_moderation(event.worker.result)
        elif _finished_without_success(event):
            logger.error("Worker %s failed: %s", name, event.worker.error)
            self.query_one("#list-loading", LoadingIndicator).display = False
            self._show_error(f"Unexpected error: {event.worker.error}")

    def _show_error(self, message: Optional[str]) -> None:
        error = self.query_one("#list-error", ErrorMessage)
        if message:
            error.update(Text(f"{message} Press r to retry.", style="bold red"))
        error.display = bool(message)

    def render_stories(self) -> None:
        store = self.app.moderation
        state = store.state(self.category)
        self.query_one("#list-loading", LoadingIndicator).display = False
        self.query_one(StatusBar).loading_status = ""
        self._show_error(store.error)

        list_view = self.query_one("#stories-list", ListView)
        list_view.clear()
        for story in state.items:
            list_view.append(
                StoryListItem(
                    story,
                    selectable=self.is_pending,
                    selected=store.is_selected(story.id),
                )
            )
        if state.pagination:
            self.page = state.pagination.current_page
        self._update_summary()

    def _update_summary(self) -> None:
        store = self.app.moderation
        state = store.state(self.category)
        parts = []
        pagination = state.pagination
        if pagination:
            parts.append(
                f"Page {pagination.current_page} of {pagination.total_pages}"
                f" ({pagination.total_stories} stories)"
            )
        if state.search_text:
            parts.append(f'Search: "{state.search_text}"')
        if self.is_pending:
            parts.append(f"{len(store.selected_ids)} selected")
        if not state.items and not store.is_loading and not store.error:
            parts.append("No stories found")
        self.query_one("#list-summary", Static).update(Text(" | ".join(parts)))

    def _refresh_markers(self) -> None:
        store = self.app.moderation
        for item in self.query(StoryListItem):
            item.set_selected(store.is_selected(item.story.id))
        self._update_summary()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "search":
            return
        self.search_text = event.value.strip()
        store = self.app.moderation
        text = self.search_text
        self.query_one("#list-loading", LoadingIndicator).display = True
        # An empty search falls back to the plain list inside the store.
        self.run_worker(
            lambda: store.search_stories(text, self.category, 1),
            name="stories_loader",
            thread=True,
        )
        self.query_one("#stories-list", ListView).focus()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, StoryListItem):
            self.app.push_screen(StoryDetailScreen(event.item.story.id, self.category))

    def action_refresh(self) -> None:
        self.load_page(self.page, force=True)

    def action_next_page(self) -> None:
        pagination = self.app.moderation.pagination(self.category)
        if pagination and pagination.has_next_page:
            self.load_page(pagination.current_page + 1)

    def action_prev_page(self) -> None:
        pagination = self.app.moderation.pagination(self.category)
        if pagination and pagination.has_prev_page:
            self.load_page(pagination.current_page - 1)

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_toggle_select(self) -> None:
        if not self.is_pending:
            return
        item = self.query_one("#stories-list", ListView).highlighted_child
        if isinstance(item, StoryListItem):
            self.app.moderation.toggle_select_story(item.story.id)
            self._refresh_markers()

    def action_select_all(self) -> None:
        if not self.is_pending:
            return
        store = self.app.moderation
        if store.selected_ids and len(store.selected_ids) == len(store.pending_stories):
            store.deselect_all_stories()
        else:
            store.select_all_stories()
        self._refresh_markers()

    def _confirm_bulk(self, action: str) -> None:
        if not self.is_pending:
            return
        store = self.app.moderation
        count = len(store.selected_ids)
        if not count:
            self.app.notify("No stories selected", severity="error")
            return

        def on_confirm(confirmed: Optional[bool]) -> None:
            if not confirmed:
                return
            work = (
                store.approve_selected_stories
                if action == "approve"
                else store.reject_selected_stories
            )
            self.query_one("#list-loading", LoadingIndicator).display = True
            self.run_worker(work, name="moderate", thread=True)

        noun = "story" if count == 1 else "stories"
        self.app.push_screen(
            ConfirmScreen(
                f"{action.title()} Stories",
                f"Are you sure you want to {action} {count} selected {noun}?",
                confirm_label=action.title(),
            ),
            on_confirm,
        )

    def action_approve_selected(self) -> None:
        self._confirm_bulk("approve")

    def action_reject_selected(self) -> None:
        self._confirm_bulk("reject")

    def _handle_moderation(self, result: Any) -> None:
        store = self.app.moderation
        self.query_one("#list-loading", LoadingIndicator).display = False
        if result is None or not result.success:
            self.app.notify(store.error or "Action failed", severity="error")
        else:
            self.app.notify(store.message or result.message)
            if result.failed:
                reasons = ", ".join(
                    f"{f.get('storyId')}: {f.get('reason', 'unknown')}" for f in result.failed
                )
                self.app.notify(
                    f"{len(result.failed)} stories could not be processed ({reasons})",
                    severity="warning",
                )
        self.render_stories()


class StoryDetailScreen(Screen):
    BINDINGS = [
        Binding("escape", "app.pop_screen", "Back"),
        Binding("ctrl+s", "save", "Save"),
        Binding("ctrl+r", "reload", "Reload"),
    ]

    # input id -> wire field
    TEXT_FIELDS = {
        "title": "storyTitle",
        "author-name": "userName",
        "author-email": "userEmail",
        "author-details": "userDetails",
    }

    def __init__(self, story_id: str, category: StatusCategory):
        super().__init__()
        self.story_id = story_id
        self.category = category

    def compose(self) -> ComposeResult:
        yield Header()
        yield LoadingIndicator(id="story-loading")
        with VerticalScroll(id="story-scroll"):
            yield Static("", id="story-meta")
            yield ErrorMessage("", id="story-error")
            yield Label("Title")
            yield Input(id="title")
            yield Label("Tags (comma separated)")
            yield Input(id="tags")
            yield Label("Author name")
            yield Input(id="author-name")
            yield Label("Author email")
            yield Input(id="author-email")
            yield Label("Author bio")
            yield Input(id="author-details")
            yield Label("Content")
            yield TextArea("", id="content")
            with Horizontal(classes="form-buttons"):
                yield Button("Save", variant="primary", id="save")
                yield Button("Change image", id="image")
                if self.category is StatusCategory.PENDING:
                    yield Button("Approve", variant="success", id="approve")
                    yield Button("Reject", variant="error", id="reject")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Story"
        self.query_one("#story-error", ErrorMessage).display = False
        self.load_story()

    def load_story(self) -> None:
        self.query_one("#story-loading", LoadingIndicator).display = True
        self.query_one("#story-scroll").display = False
        store = self.app.moderation
        self.run_worker(
            lambda: store.fetch_story_by_id(self.story_id, self.category),
            name="story_loader",
            thread=True,
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        name = getattr(event.worker, "name", None)
        if not self.is_mounted:
            return
        if event.state is WorkerState.SUCCESS:
            if name == "story_loader":
                self.populate()
            elif name == "story_update":
                self._after_update(bool(event.worker.result))
            elif name == "moderate":
                self._after_moderation(event.worker.result)
        elif _finished_without_success(event):
            logger.error("Story worker %s failed: %s", name, event.worker.error)
            self.query_one("#story-loading", LoadingIndicator).display = False
            self._show_error(f"Unexpected error: {event.worker.error}")

    def _show_error(self, message: Optional[str]) -> None:
        error = self.query_one("#story-error", ErrorMessage)
        if message:
            error.update(Text(message, style="bold red"))
        error.display = bool(message)

    def _story(self):
        story = self.app.moderation.current_story
        if story is None or story.id != self.story_id:
            return None
        return story

    def populate(self) -> None:
        store = self.app.moderation
        self.query_one("#story-loading", LoadingIndicator).display = False
        self.query_one("#story-scroll").display = True
        story = self._story()
        if story is None:
            self._show_error((store.error or "Story not found.") + " Press ctrl+r to retry.")
            return
        self._show_error(None)
        self.sub_title = story.title
        submitted = story.submitted_at
        meta = [
            f"Status: {self.category.label}",
            f"Submitted: {submitted:%Y-%m-%d %H:%M} UTC" if submitted else "Submitted: unknown",
            f"Reads: {story.read_count}",
            f"Upvotes: {story.upvote_count}",
        ]
        if story.image_ref:
            meta.append(f"Image: {story.image_ref}")
        self.query_one("#story-meta", Static).update(Text("  ".join(meta)))
        self.query_one("#title", Input).value = story.title
        self.query_one("#tags", Input).value = ", ".join(story.tags)
        self.query_one("#author-name", Input).value = story.user_name
        self.query_one("#author-email", Input).value = story.user_email
        self.query_one("#author-details", Input).value = story.user_details or ""
        self.query_one("#content", TextArea).load_text(story.content)

    def changed_fields(self) -> Dict[str, Any]:
        story = self._story()
        if story is None:
            return {}
        current = story.to_dict()
        changes: Dict[str, Any] = {}
        for input_id, wire in self.TEXT_FIELDS.items():
            value = self.query_one(f"#{input_id}", Input).value.strip()
            if value != (current.get(wire) or ""):
                changes[wire] = value
        tags = [t.strip() for t in self.query_one("#tags", Input).value.split(",") if t.strip()]
        if tags != story.tags:
            changes["tagList"] = tags
        content = self.query_one("#content", TextArea).text
        if content != story.content:
            changes["storyContent"] = content
        return changes

    def action_save(self) -> None:
        changes = self.changed_fields()
        if not changes:
            self.app.notify("No changes to save")
            return
        store = self.app.moderation
        self.run_worker(
            lambda: store.update_story(self.story_id, self.category, changes),
            name="story_update",
            thread=True,
        )

    def action_reload(self) -> None:
        self.load_story()

    def _after_update(self, ok: bool) -> None:
        store = self.app.moderation
        if ok:
            self.app.notify(store.message or "Story updated successfully")
            self.populate()
        else:
            self.app.notify(store.error or "Failed to update story", severity="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button.id
        if button == "save":
            self.action_save()
        elif button == "image":
            self.app.push_screen(ImagePickerScreen(), self._on_image_chosen)
        elif button in ("approve", "reject"):
            self._confirm_moderation(button)

    def _on_image_chosen(self, url: Optional[str]) -> None:
        if not url:
            return
        store = self.app.moderation
        self.run_worker(
            lambda: store.update_story_cover_image(self.story_id, url, self.category),
            name="story_update",
            thread=True,
        )

    def _confirm_moderation(self, action: str) -> None:
        store = self.app.moderation
        call = store.approve_stories if action == "approve" else store.reject_stories

        def on_confirm(confirmed: Optional[bool]) -> None:
            if confirmed:
                self.run_worker(lambda: call([self.story_id]), name="moderate", thread=True)

        self.app.push_screen(
            ConfirmScreen(
                f"{action.title()} Story",
                f"Are you sure you want to {action} this story?",
                confirm_label=action.title(),
            ),
            on_confirm,
        )

    def _after_moderation(self, result: Any) -> None:
        store = self.app.moderation
        if result is not None and result.success and self.story_id not in result.failed_ids:
            self.app.notify(store.message or result.message)
            self.app.pop_screen()
        else:
            self.app.notify(store.error or "Action failed", severity="error")
