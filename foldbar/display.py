"""Rich renderables for a ClientState."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from foldbar.models import ClientState, UnitStatus, WorkUnit

_STATUS_STYLES = {
    "Folding": "green",
    "Folding (partial)": "green",
    "Paused": "dark_orange",
    "Finishing": "cyan",
    "Finishing (partial)": "cyan",
    "Idle": "dim",
}

_UNIT_STYLES = {
    UnitStatus.RUNNING: "green",
    UnitStatus.TRANSFER: "blue",
    UnitStatus.READY: "dark_orange",
    UnitStatus.PAUSED: "dark_orange",
    UnitStatus.ERROR: "red",
    UnitStatus.UNKNOWN: "dim",
}


def _unit_state(state: ClientState, unit: WorkUnit) -> Text:
    if state.unit_is_paused(unit):
        return Text("paused", style="dark_orange")
    if state.unit_is_finishing(unit):
        return Text(f"{unit.state.lower()} (finishing)", style="cyan")
    return Text(unit.state.lower(), style=_UNIT_STYLES[unit.status])


def _summary(state: ClientState) -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    status = state.status_text
    table.add_row("Status", Text(status, style=_STATUS_STYLES.get(status, "")))
    table.add_row("Agent", f"{state.version} on {state.hostname}")
    table.add_row("Donor", f"{state.user or 'anonymous'} (team {state.team})")
    table.add_row("Resources", f"{state.cpus} CPU / {state.gpus} GPU")
    table.add_row("PPD", f"{state.total_ppd:,} ({state.estimated_credits_per_hour:,.0f} credits/h)")
    return table


def _groups(state: ClientState) -> Table:
    table = Table(title="Groups", title_justify="left", expand=False)
    for name in ("Group", "CPUs", "GPUs", "State", "PPD"):
        table.add_column(name)
    for group in state.groups:
        if group.finish:
            label = Text("finishing", style="cyan")
        elif group.paused:
            label = Text("paused", style="dark_orange")
        else:
            label = Text("folding", style="green")
        table.add_row(
            group.display_name, str(group.cpus), str(group.gpus), label, f"{state.ppd_for(group.name):,}"
        )
    return table


def _units(state: ClientState) -> Table:
    table = Table(title="Work units", title_justify="left", expand=False)
    for name in ("Unit", "Group", "Core", "State", "Progress", "ETA", "PPD"):
        table.add_column(name)
    for unit in state.units:
        group = state.group_named(unit.group)
        table.add_row(
            unit.prcg,
            group.display_name if group else Text(unit.group or "Default", style="dim"),
            unit.core,
            _unit_state(state, unit),
            f"{unit.progress:5.1f}%",
            unit.eta,
            f"{unit.ppd:,}",
        )
    return table


def render_state(state: ClientState | None, *, status: str = "", error: str | None = None) -> RenderableType:
    if state is None:
        text = Text(status or "No data", style="dim")
        if error:
            text.append(f"  {error}", style="red")
        return text
    parts: list[RenderableType] = [_summary(state)]
    if state.groups:
        parts.append(_groups(state))
    if state.units:
        parts.append(_units(state))
    if error:
        parts.append(Text(error, style="red"))
    return Group(*parts)
