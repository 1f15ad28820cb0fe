"""Rich renderables for the dashboard.

``render_dashboard()`` is a pure function of the snapshot: it builds a fresh
Layout on every state change and never reads Redis.
"""

import json
from typing import Any

from rich.align import Align
from rich.box import ROUNDED, SIMPLE_HEAD
from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bullscope.broker.models import (
    GlobalMetrics,
    JobDetail,
    JobState,
    ListView,
    QueueStats,
    RecentJob,
    SchedulerDetail,
)
from bullscope.core.store import FocusedPane, JobListing, SchedulerListing, Snapshot
from bullscope.ui.format import (
    format_interval,
    format_next_run,
    format_number,
    format_relative_time,
    format_timestamp,
    schedule_description,
)
from bullscope.ui.keys import STATUS_SHORTCUTS

FOOTER_HINT = (
    "j/k: navigate | Tab: switch pane | Enter: select | d: delete | "
    "r: refresh | g: jump | 1-7: filter | q: quit"
)
QUEUE_PANE_WIDTH = 32
RECENT_HISTORY_SHOWN = 5

STATE_STYLES: dict[JobState, str] = {
    JobState.ACTIVE: "green",
    JobState.WAITING: "yellow",
    JobState.COMPLETED: "blue",
    JobState.FAILED: "red",
    JobState.DELAYED: "magenta",
}


def state_style(state: JobState) -> str:
    return STATE_STYLES.get(state, "dim")


def _format_data(data: Any, max_length: int | None = None) -> Text:
    try:
        text = json.dumps(data, indent=2, default=str)
    except (TypeError, ValueError):
        text = str(data)
    if max_length is not None and len(text) > max_length:
        text = text[:max_length] + "\n  ..."
    return Text(text)


def _field(label: str, value: str | Text, width: int = 13) -> Text:
    line = Text()
    line.append(f"{label + ':':<{width}}", style="bold")
    line.append(value)
    return line


# =============================================================================
# Header, metrics and footer
# =============================================================================


def render_header(snapshot: Snapshot, server: str | None = None) -> Panel:
    status = Text(justify="right")
    if snapshot.error:
        status.append(f"Error: {snapshot.error}", style="red")
    elif snapshot.connected:
        status.append("Connected", style="green")
        if server:
            status.append(f" {server}", style="dim")
    else:
        status.append("Connecting...", style="yellow")

    grid = Table.grid(expand=True)
    grid.add_column()
    grid.add_column(justify="right")
    grid.add_row(Text("BullMQ", style="bold"), status)
    return Panel(grid, box=ROUNDED, border_style="bright_blue", padding=(0, 1))


def render_metrics(metrics: GlobalMetrics | None) -> Text:
    if metrics is None:
        return Text(" Loading metrics...", style="dim")

    counts = metrics.counts
    rates = metrics.rates
    line = Text(" ", no_wrap=True, overflow="ellipsis")

    def add(label: str, value: str, style: str) -> None:
        line.append(f"{label}:", style="dim")
        line.append(value, style=f"bold {style}")
        line.append("  ")

    add("QUEUES", str(metrics.queue_count), "default")
    # Backlog over 100 is worth flagging
    add("WAIT", format_number(counts.wait), "red" if counts.wait > 100 else "yellow")
    add("ACTIVE", format_number(counts.active), "green")
    add("DONE", format_number(counts.completed), "blue")
    add("FAIL", format_number(counts.failed), "red" if counts.failed > 0 else "dim")
    add("DELAY", format_number(counts.delayed), "magenta")

    line.append("ENQ:", style="dim")
    line.append(f"{round(rates.enqueued_per_min)}/m", style="bold cyan")
    line.append(f" ({rates.enqueued_per_sec}/s)  ", style="dim")
    line.append("DEQ:", style="dim")
    line.append(f"{round(rates.dequeued_per_min)}/m", style="bold bright_red")
    line.append(f" ({rates.dequeued_per_sec}/s)", style="dim")
    return line


def render_footer() -> Text:
    return Text(f" {FOOTER_HINT}", style="dim", no_wrap=True, overflow="ellipsis")


# =============================================================================
# Queue pane
# =============================================================================


def render_queue_list(snapshot: Snapshot) -> Panel:
    focused = snapshot.focused_pane is FocusedPane.QUEUES
    title = "QUEUES [*]" if focused else "QUEUES"

    if not snapshot.queues:
        body: RenderableType = Text("No queues found", style="dim")
    else:
        table = Table.grid(padding=0, expand=True)
        table.add_column(overflow="ellipsis", no_wrap=True)
        for index, queue in enumerate(snapshot.queues):
            selected = index == snapshot.selected_queue_index
            name = Text(queue.name, style="bold cyan" if selected else "default")
            description = Text(
                f"  {queue.total} jobs | {'PAUSED' if queue.is_paused else 'active'}",
                style="dim",
            )
            row_style = "on grey23" if selected else ""
            table.add_row(name, style=row_style)
            table.add_row(description, style=row_style)
        body = table

    return Panel(
        body,
        title=f"[bold]{title}[/bold]",
        title_align="left",
        border_style="cyan" if focused else "dim",
        box=ROUNDED,
        padding=(0, 1),
    )


def render_queue_stats(queue: QueueStats | None) -> Panel:
    if queue is None:
        return Panel(Text("Select a queue", style="dim"), box=ROUNDED, border_style="dim")

    title = Text(queue.name, style="bold")
    if queue.is_paused:
        title.append(" [PAUSED]", style="red")

    counts = queue.counts
    stats = Text(no_wrap=True, overflow="ellipsis")
    stats.append(f"wait: {counts.wait}", style="yellow")
    stats.append(f"  active: {counts.active}", style="green")
    stats.append(f"  completed: {counts.completed}", style="blue")
    stats.append(f"  failed: {counts.failed}", style="red")
    stats.append(f"  delayed: {counts.delayed}", style="magenta")
    stats.append(f"  schedulers: {queue.schedulers}", style="bright_red")

    return Panel(Group(title, stats), box=ROUNDED, border_style="dim", padding=(0, 1))


def render_status_filter(view: ListView) -> Text:
    line = Text(" ", no_wrap=True)
    for index, (key, option) in enumerate(STATUS_SHORTCUTS.items()):
        if index:
            line.append("  ")
        if option is view:
            line.append(f"[{key}:{option}]", style="bold cyan")
        else:
            line.append(f"{key}:{option}", style="dim")
    return line


# =============================================================================
# Job and scheduler pane
# =============================================================================


def _pager(listing: JobListing | SchedulerListing) -> str:
    if not listing.items:
        return ""
    return (
        f"Page {listing.page}/{listing.total_pages} ({listing.total} total)"
        "  <- prev | next -> | g jump"
    )


def _job_table(listing: JobListing, focused: bool) -> Table:
    table = Table(box=SIMPLE_HEAD, expand=True, show_edge=False, caption=_pager(listing))
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Name", overflow="ellipsis", no_wrap=True, ratio=1)
    table.add_column("State", no_wrap=True)
    table.add_column("Created", style="dim", no_wrap=True)

    for index, job in enumerate(listing.items):
        selected = index == listing.selected_index
        table.add_row(
            job.id,
            job.name,
            Text(str(job.state), style=state_style(job.state)),
            format_relative_time(job.timestamp),
            style=("reverse" if focused else "on grey23") if selected else None,
        )
    return table


def _scheduler_table(listing: SchedulerListing, focused: bool) -> Table:
    table = Table(box=SIMPLE_HEAD, expand=True, show_edge=False, caption=_pager(listing))
    table.add_column("Key", style="bold", overflow="ellipsis", no_wrap=True)
    table.add_column("Name", overflow="ellipsis", no_wrap=True, ratio=1)
    table.add_column("Schedule", style="green", no_wrap=True)
    table.add_column("Next", no_wrap=True)
    table.add_column("Runs", justify="right", style="dim")

    for index, scheduler in enumerate(listing.items):
        selected = index == listing.selected_index
        table.add_row(
            scheduler.key,
            scheduler.name,
            schedule_description(scheduler.schedule),
            format_next_run(scheduler.next_run),
            str(scheduler.iteration_count or 0),
            style=("reverse" if focused else "on grey23") if selected else None,
        )
    return table


def render_listing(snapshot: Snapshot) -> Panel:
    focused = snapshot.focused_pane is FocusedPane.JOBS
    listing = snapshot.listing

    body: RenderableType
    match listing:
        case SchedulerListing():
            label = "SCHEDULERS"
            if listing.items:
                body = _scheduler_table(listing, focused)
            else:
                body = Text("No job schedulers found", style="dim")
        case JobListing():
            label = "JOBS"
            if listing.items:
                body = _job_table(listing, focused)
            else:
                body = Text("No jobs found", style="dim")

    title = f"{label} [*]" if focused else label
    return Panel(
        body,
        title=f"[bold]{title}[/bold]",
        title_align="left",
        border_style="cyan" if focused else "dim",
        box=ROUNDED,
        padding=(0, 1),
    )


# =============================================================================
# Overlays
# =============================================================================


def render_job_detail(job: JobDetail) -> Panel:
    lines: list[Text] = [
        _field("ID", job.id),
        _field("Name", job.name),
        _field("State", Text(str(job.state), style=state_style(job.state))),
        _field("Attempts", str(job.attempts_made)),
        _field("Created", format_timestamp(job.timestamp)),
    ]
    if job.processed_on:
        lines.append(_field("Processed", format_timestamp(job.processed_on)))
    if job.finished_on:
        lines.append(_field("Finished", format_timestamp(job.finished_on)))

    if job.repeat_job_key:
        lines.append(Text())
        lines.append(Text("Scheduler Info:", style="bold bright_red"))
        lines.append(_field("Scheduler", Text(job.repeat_job_key, style="bright_red")))
        repeat = job.opts.get("repeat") if isinstance(job.opts, dict) else None
        if isinstance(repeat, dict):
            if repeat.get("pattern"):
                lines.append(_field("Pattern", Text(str(repeat["pattern"]), style="green")))
            if repeat.get("every"):
                every = format_interval(int(repeat["every"]))
                lines.append(_field("Interval", Text(every, style="green")))

    if job.delay and job.delay > 0:
        lines.append(_field("Delay", format_interval(job.delay)))

    lines += [Text(), Text("Data:", style="bold"), _format_data(job.data)]

    if job.return_value is not None:
        lines += [Text(), Text("Return Value:", style="bold"), _format_data(job.return_value)]

    if job.failed_reason:
        lines += [Text(), Text("Error:", style="bold red"), Text(job.failed_reason, style="red")]

    if job.stacktrace:
        lines += [Text(), Text("Stacktrace:", style="bold red")]
        lines += [Text(line, style="dim") for line in job.stacktrace]

    return Panel(
        Group(*lines),
        title=f"[bold]Job: {escape(job.id)}[/bold]",
        title_align="left",
        subtitle="[dim]d: delete job | Esc: close[/dim]",
        subtitle_align="left",
        border_style="blue",
        box=ROUNDED,
        padding=(1, 2),
    )


def _recent_job_line(job: RecentJob) -> Text:
    line = Text("  ")
    line.append(f"#{job.id}", style="dim")
    line.append(" ")
    line.append(str(job.state), style=state_style(job.state))
    line.append(f"  {format_timestamp(job.finished_on or job.timestamp)}")

    if job.state is JobState.FAILED and job.failed_reason:
        reason = job.failed_reason
        if len(reason) > 30:
            reason = reason[:30] + "..."
        line.append(f"  {reason}", style="red")
    elif job.processed_on and job.finished_on:
        line.append(f" ({format_interval(job.finished_on - job.processed_on)})")
    return line


def render_scheduler_detail(scheduler: SchedulerDetail) -> Panel:
    width = 16
    lines: list[Text] = [
        _field("Key", scheduler.key, width),
        _field("Name", scheduler.name, width),
    ]
    if scheduler.id:
        lines.append(_field("ID", scheduler.id, width))

    lines += [Text(), Text("Schedule:", style="bold bright_red")]
    lines.append(
        _field("Schedule", Text(schedule_description(scheduler.schedule), style="green"), width)
    )
    if scheduler.tz:
        lines.append(_field("Timezone", scheduler.tz, width))
    if scheduler.next_run:
        lines.append(_field("Next Run", format_timestamp(scheduler.next_run), width))

    lines += [Text(), Text("Statistics:", style="bold cyan")]
    iterations = str(scheduler.iteration_count or 0)
    if scheduler.limit:
        iterations += f" / {scheduler.limit}"
    lines.append(_field("Iterations", iterations, width))
    if scheduler.start_date:
        lines.append(_field("Start Date", format_timestamp(scheduler.start_date), width))
    if scheduler.end_date:
        lines.append(_field("End Date", format_timestamp(scheduler.end_date), width))

    if scheduler.template is not None:
        lines += [Text(), Text("Job Template:", style="bold magenta")]
        if scheduler.template.data is not None:
            lines += [Text("Data:", style="bold"), _format_data(scheduler.template.data, 500)]
        if scheduler.template.opts is not None:
            lines += [Text("Options:", style="bold"), _format_data(scheduler.template.opts, 500)]

    lines += [Text(), Text("Next Delayed Job:", style="bold yellow")]
    next_job = scheduler.next_job
    if next_job is not None:
        lines.append(_field("ID", next_job.id, width))
        lines.append(
            _field("State", Text(str(next_job.state), style=state_style(next_job.state)), width)
        )
        if scheduler.next_run:
            lines.append(
                _field("Runs", Text(format_next_run(scheduler.next_run), style="green"), width)
            )
        if next_job.data is not None:
            lines += [Text("Data:", style="bold"), _format_data(next_job.data, 300)]
    else:
        lines.append(Text("No pending job", style="dim"))

    lines += [Text(), Text("Recent History:", style="bold bright_blue")]
    if scheduler.recent_jobs:
        lines += [_recent_job_line(job) for job in scheduler.recent_jobs[:RECENT_HISTORY_SHOWN]]
        hidden = len(scheduler.recent_jobs) - RECENT_HISTORY_SHOWN
        if hidden > 0:
            lines.append(Text(f"  ... and {hidden} more", style="dim"))
    else:
        lines.append(Text("No history yet", style="dim"))

    hint = "j: view next job | Esc: close" if next_job is not None else "Esc: close"
    return Panel(
        Group(*lines),
        title=f"[bold]Scheduler: {escape(scheduler.key)}[/bold]",
        title_align="left",
        subtitle=f"[dim]{hint}[/dim]",
        subtitle_align="left",
        border_style="bright_red",
        box=ROUNDED,
        padding=(1, 2),
    )


def render_confirm_delete(job_id: str) -> RenderableType:
    choices = Text(justify="center")
    choices.append("[y] Yes", style="green")
    choices.append("    ")
    choices.append("[n] No", style="red")
    panel = Panel(
        Group(Text(f"Delete job {job_id}?", style="bold", justify="center"), Text(), choices),
        title="[bold]Confirm[/bold]",
        border_style="red",
        box=ROUNDED,
        padding=(1, 4),
        expand=False,
    )
    return Align.center(panel, vertical="middle")


def render_page_jump(text: str, page: int, total_pages: int) -> RenderableType:
    value = Text(justify="center")
    value.append(text, style="cyan")
    value.append("_", style="dim")
    panel = Panel(
        Group(
            Text("Enter page number, then press Enter", style="dim", justify="center"),
            value,
            Text(f"Current: {page}/{total_pages} | Esc to cancel", style="dim", justify="center"),
        ),
        title="[bold]Go to Page[/bold]",
        border_style="cyan",
        box=ROUNDED,
        padding=(1, 4),
        expand=False,
    )
    return Align.center(panel, vertical="middle")


def _overlay(snapshot: Snapshot) -> RenderableType | None:
    if snapshot.show_confirm_delete:
        job = snapshot.job_detail or snapshot.selected_job
        return render_confirm_delete(job.id if job is not None else "unknown")
    if snapshot.show_page_jump:
        listing = snapshot.listing
        return render_page_jump(snapshot.page_jump_input, listing.page, listing.total_pages)
    if snapshot.job_detail is not None:
        return render_job_detail(snapshot.job_detail)
    if snapshot.scheduler_detail is not None:
        return render_scheduler_detail(snapshot.scheduler_detail)
    return None


# =============================================================================
# Dashboard
# =============================================================================


def render_dashboard(snapshot: Snapshot, *, server: str | None = None) -> Layout:
    """Build the full-screen layout; an open modal replaces the body."""
    layout = Layout(name="root")
    layout.split_column(
        Layout(render_header(snapshot, server), name="header", size=3),
        Layout(render_metrics(snapshot.global_metrics), name="metrics", size=1),
        Layout(name="body", ratio=1),
        Layout(render_footer(), name="footer", size=1),
    )

    overlay = _overlay(snapshot)
    if overlay is not None:
        layout["body"].update(overlay)
        return layout

    layout["body"].split_row(
        Layout(render_queue_list(snapshot), name="queues", size=QUEUE_PANE_WIDTH),
        Layout(name="main", ratio=1),
    )
    layout["main"].split_column(
        Layout(render_queue_stats(snapshot.selected_queue), name="stats", size=4),
        Layout(render_status_filter(snapshot.view), name="filter", size=1),
        Layout(render_listing(snapshot), name="listing", ratio=1),
    )
    return layout
