"""Operator intents: synchronous, bounds-checked state changes.

Each intent reads the current snapshot, validates against it and writes one
merge. Intents that change which page is on screen (queue, page, status
filter) also ask the poller for a background partial refresh.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from bullscope.broker.models import JobDetail, ListView, SchedulerDetail
from bullscope.core.store import FocusedPane, Store, clamp_index, empty_listing

if TYPE_CHECKING:
    from bullscope.core.polling import Poller

logger = logging.getLogger(__name__)


class Intents:
    """State-mutating operations exposed to the presentation layer."""

    def __init__(self, store: Store, poller: Poller | None = None) -> None:
        self._store = store
        self._poller = poller

    def _refresh_listing(self) -> None:
        if self._poller is not None:
            self._poller.schedule_listing_refresh()

    # Queue navigation

    def select_next_queue(self) -> bool:
        snapshot = self._store.get_snapshot()
        if snapshot.selected_queue_index >= len(snapshot.queues) - 1:
            return False
        self._select_queue(snapshot.selected_queue_index + 1)
        return True

    def select_prev_queue(self) -> bool:
        snapshot = self._store.get_snapshot()
        if snapshot.selected_queue_index <= 0:
            return False
        self._select_queue(snapshot.selected_queue_index - 1)
        return True

    def _select_queue(self, index: int) -> None:
        listing = self._store.get_snapshot().listing
        self._store.set_partial(
            selected_queue_index=index,
            listing=replace(listing, page=1, selected_index=0),
        )
        self._refresh_listing()

    # Item navigation (jobs or schedulers, whichever is listed)

    def select_next_item(self) -> bool:
        listing = self._store.get_snapshot().listing
        if listing.selected_index >= len(listing.items) - 1:
            return False
        self._store.set_partial(
            listing=replace(listing, selected_index=listing.selected_index + 1)
        )
        return True

    def select_prev_item(self) -> bool:
        listing = self._store.get_snapshot().listing
        if listing.selected_index <= 0:
            return False
        self._store.set_partial(
            listing=replace(listing, selected_index=listing.selected_index - 1)
        )
        return True

    def select_item(self, index: int) -> None:
        listing = self._store.get_snapshot().listing
        self._store.set_partial(
            listing=replace(listing, selected_index=clamp_index(index, len(listing.items)))
        )

    # Pagination

    def next_page(self) -> bool:
        listing = self._store.get_snapshot().listing
        if listing.page >= listing.total_pages:
            return False
        return self.go_to_page(listing.page + 1)

    def prev_page(self) -> bool:
        listing = self._store.get_snapshot().listing
        if listing.page <= 1:
            return False
        return self.go_to_page(listing.page - 1)

    def go_to_page(self, page: int) -> bool:
        """Jump to a page, clamped to [1, total_pages]."""
        listing = self._store.get_snapshot().listing
        target = max(1, min(page, listing.total_pages))
        self._store.set_partial(listing=replace(listing, page=target, selected_index=0))
        self._refresh_listing()
        return True

    # Status filter

    def set_view(self, view: ListView) -> None:
        """Switch status filter; the previous page is dropped."""
        logger.debug("Status filter -> %s", view)
        listing = self._store.get_snapshot().listing
        self._store.set_partial(listing=empty_listing(view, listing.page_size))
        self._refresh_listing()

    # Focus

    def toggle_focus(self) -> None:
        pane = self._store.get_snapshot().focused_pane
        self._store.set_partial(
            focused_pane=(
                FocusedPane.JOBS if pane is FocusedPane.QUEUES else FocusedPane.QUEUES
            )
        )

    def focus_jobs(self) -> None:
        self._store.set_partial(focused_pane=FocusedPane.JOBS)

    # Detail overlays

    def open_job_detail(self, detail: JobDetail) -> None:
        self._store.set_partial(job_detail=detail)

    def close_job_detail(self) -> None:
        self._store.set_partial(job_detail=None)

    def open_scheduler_detail(self, detail: SchedulerDetail) -> None:
        self._store.set_partial(scheduler_detail=detail)

    def close_scheduler_detail(self) -> None:
        self._store.set_partial(scheduler_detail=None)

    # Delete confirmation

    def show_delete_confirm(self) -> None:
        self._store.set_partial(show_confirm_delete=True)

    def hide_delete_confirm(self) -> None:
        self._store.set_partial(show_confirm_delete=False)

    # Page jump modal

    def show_page_jump(self) -> bool:
        """Open the page-jump prompt; only useful with more than one page."""
        if self._store.get_snapshot().listing.total_pages <= 1:
            return False
        self._store.set_partial(show_page_jump=True, page_jump_input="")
        return True

    def hide_page_jump(self) -> None:
        self._store.set_partial(show_page_jump=False, page_jump_input="")

    def update_page_jump_input(self, text: str) -> None:
        self._store.set_partial(page_jump_input="".join(c for c in text if c in "0123456789"))

    def append_page_jump_input(self, char: str) -> bool:
        if len(char) != 1 or char not in "0123456789":
            return False
        current = self._store.get_snapshot().page_jump_input
        self._store.set_partial(page_jump_input=current + char)
        return True

    def backspace_page_jump_input(self) -> None:
        current = self._store.get_snapshot().page_jump_input
        self._store.set_partial(page_jump_input=current[:-1])

    def confirm_page_jump(self) -> bool:
        """Jump to the typed page (if any) and close the prompt."""
        text = self._store.get_snapshot().page_jump_input
        jumped = False
        if text:
            target = int(text)
            if target >= 1:
                jumped = self.go_to_page(target)
        self.hide_page_jump()
        return jumped
