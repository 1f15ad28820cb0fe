"""Key bindings: translate key presses into intents and broker actions."""

import logging

from bullscope.broker.models import ListView
from bullscope.broker.queue import BullQueue
from bullscope.broker.registry import QueueRegistry
from bullscope.core.intents import Intents
from bullscope.core.paginate import get_scheduler_detail
from bullscope.core.polling import Poller
from bullscope.core.store import FocusedPane, Store
from bullscope.ui.keys import Key, view_for_key

logger = logging.getLogger(__name__)


class Controller:
    """
    Dispatches key presses by modal priority.

    The confirm dialog swallows every key except its own, then the page-jump
    prompt, then the detail overlays, and only then the dashboard bindings.
    """

    def __init__(
        self,
        store: Store,
        intents: Intents,
        poller: Poller,
        registry: QueueRegistry,
    ) -> None:
        self._store = store
        self._intents = intents
        self._poller = poller
        self._registry = registry

    async def handle_key(self, key: Key) -> bool:
        """Handle one key press. Returns False when the operator quits."""
        if (key.name == "q" and not key.ctrl) or (key.ctrl and key.name == "c"):
            return False

        snapshot = self._store.get_snapshot()

        if snapshot.show_confirm_delete:
            if key.name == "y":
                await self._confirm_delete()
            elif key.name in ("n", "escape"):
                self._intents.hide_delete_confirm()
            return True

        if snapshot.show_page_jump:
            if key.name == "escape":
                self._intents.hide_page_jump()
            elif key.name == "enter":
                self._intents.confirm_page_jump()
            elif key.name == "backspace":
                self._intents.backspace_page_jump_input()
            elif key.is_digit:
                self._intents.append_page_jump_input(key.name)
            return True

        if snapshot.show_job_detail:
            if key.name == "escape":
                self._intents.close_job_detail()
            elif key.name == "d":
                self._intents.show_delete_confirm()
            return True

        if snapshot.show_scheduler_detail:
            if key.name == "escape":
                self._intents.close_scheduler_detail()
            elif key.name == "j":
                await self._open_scheduler_next_job()
            return True

        await self._handle_dashboard_key(key)
        return True

    async def _handle_dashboard_key(self, key: Key) -> None:
        snapshot = self._store.get_snapshot()
        jobs_focused = snapshot.focused_pane is FocusedPane.JOBS

        match key.name:
            case "tab":
                self._intents.toggle_focus()
            case "enter":
                if not jobs_focused:
                    self._intents.focus_jobs()
                elif snapshot.view is ListView.SCHEDULERS:
                    await self._open_scheduler_detail()
                else:
                    await self._open_job_detail()
            case "up" | "k":
                if jobs_focused:
                    self._intents.select_prev_item()
                else:
                    self._intents.select_prev_queue()
            case "down" | "j":
                if jobs_focused:
                    self._intents.select_next_item()
                else:
                    self._intents.select_next_queue()
            case "left":
                if jobs_focused:
                    self._intents.prev_page()
            case "right":
                if jobs_focused:
                    self._intents.next_page()
            case "d":
                # Schedulers cannot be deleted from here
                if jobs_focused and snapshot.selected_job is not None:
                    self._intents.show_delete_confirm()
            case "r":
                await self._poller.refresh()
            case "g":
                if jobs_focused:
                    self._intents.show_page_jump()
            case name:
                view = view_for_key(name)
                if view is not None:
                    self._intents.set_view(view)

    def _selected_queue(self) -> BullQueue | None:
        queue = self._store.get_snapshot().selected_queue
        if queue is None:
            return None
        return self._registry.get(queue.name)

    async def _open_job_detail(self) -> None:
        job = self._store.get_snapshot().selected_job
        queue = self._selected_queue()
        if job is None or queue is None:
            return

        try:
            detail = await queue.get_job_detail(job.id)
        except Exception as e:
            logger.warning("Failed to load job %s: %s", job.id, e)
            return
        if detail is not None:
            self._intents.open_job_detail(detail)

    async def _open_scheduler_detail(self) -> None:
        scheduler = self._store.get_snapshot().selected_scheduler
        queue = self._selected_queue()
        if scheduler is None or queue is None:
            return

        try:
            detail = await get_scheduler_detail(queue, scheduler.key)
        except Exception as e:
            logger.warning("Failed to load scheduler %s: %s", scheduler.key, e)
            return
        if detail is not None:
            self._intents.open_scheduler_detail(detail)

    async def _open_scheduler_next_job(self) -> None:
        scheduler = self._store.get_snapshot().scheduler_detail
        queue = self._selected_queue()
        if scheduler is None or scheduler.next_job is None or queue is None:
            return

        job_id = scheduler.next_job.id
        try:
            detail = await queue.get_job_detail(job_id)
        except Exception as e:
            logger.warning("Failed to load job %s: %s", job_id, e)
            return
        if detail is not None:
            self._intents.close_scheduler_detail()
            self._intents.open_job_detail(detail)

    async def _confirm_delete(self) -> None:
        snapshot = self._store.get_snapshot()
        if snapshot.job_detail is not None:
            job_id: str | None = snapshot.job_detail.id
        else:
            job = snapshot.selected_job
            job_id = job.id if job is not None else None

        queue = self._selected_queue()
        if queue is None or job_id is None:
            self._intents.hide_delete_confirm()
            return

        try:
            removed = await queue.remove_job(job_id)
        except Exception as e:
            logger.warning("Failed to delete job %s: %s", job_id, e)
            self._intents.hide_delete_confirm()
            return

        if not removed:
            logger.info("Job %s was already gone", job_id)
        self._intents.hide_delete_confirm()
        self._intents.close_job_detail()
        await self._poller.refresh()
