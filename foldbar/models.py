"""Immutable snapshot of what the folding agent reports.

A ClientState is rebuilt from scratch for every parsed message and never
mutated afterwards. Everything beyond the stored fields is a derived view.

Groups are keyed by name. The empty string is the agent's default group and
is a real name, not an absent one. Indexes are only stable inside a single
snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

_RUNNING_STATES = frozenset({"run", "running"})
_HALTED_STATES = frozenset({"pause", "paused", "stop", "stopped"})


class UnitStatus(Enum):
    RUNNING = auto()
    TRANSFER = auto()
    READY = auto()
    PAUSED = auto()
    ERROR = auto()
    UNKNOWN = auto()


_STATUS_BY_STATE: dict[str, UnitStatus] = {
    "run": UnitStatus.RUNNING,
    "running": UnitStatus.RUNNING,
    "download": UnitStatus.TRANSFER,
    "downloading": UnitStatus.TRANSFER,
    "upload": UnitStatus.TRANSFER,
    "uploading": UnitStatus.TRANSFER,
    "ready": UnitStatus.READY,
    "pause": UnitStatus.PAUSED,
    "paused": UnitStatus.PAUSED,
    "stop": UnitStatus.PAUSED,
    "stopped": UnitStatus.PAUSED,
    "error": UnitStatus.ERROR,
    "failed": UnitStatus.ERROR,
}


@dataclass(frozen=True, slots=True)
class WorkUnit:
    """One assignment of work, identified by project/run/clone/gen.

    Attributes:
        progress: Percentage in [0, 100]. The wire carries a fraction.
        group: Name of the owning ComputeGroup. Empty means the default group.
    """

    id: str = ""
    state: str = "unknown"
    project: int = 0
    run: int = 0
    clone: int = 0
    gen: int = 0
    core: str = ""
    progress: float = 0.0
    eta: str = ""
    ppd: int = 0
    credit_estimate: int = 0
    waiting_on: str = ""
    group: str = ""

    @property
    def status(self) -> UnitStatus:
        return _STATUS_BY_STATE.get(self.state.lower(), UnitStatus.UNKNOWN)

    @property
    def is_running(self) -> bool:
        return self.state.lower() in _RUNNING_STATES

    @property
    def is_halted(self) -> bool:
        """True when the unit itself reports a pause or stop state."""
        return self.state.lower() in _HALTED_STATES

    @property
    def prcg(self) -> str:
        return f"P{self.project} R{self.run} C{self.clone} G{self.gen}"


@dataclass(frozen=True, slots=True)
class ComputeGroup:
    index: int
    name: str
    description: str = ""
    idle: bool = False
    paused: bool = False
    finish: bool = False
    cpus: int = 0
    gpus: int = 0

    @property
    def display_name(self) -> str:
        return self.name or "Default"

    @property
    def is_active(self) -> bool:
        """Groups without cpus or gpus are templates the agent pre-creates."""
        return self.cpus > 0 or self.gpus > 0


@dataclass(frozen=True, slots=True)
class ClientState:
    version: str = ""
    user: str = ""
    team: int = 0
    hostname: str = ""
    cpus: int = 0
    gpus: int = 0
    units: tuple[WorkUnit, ...] = ()
    groups: tuple[ComputeGroup, ...] = ()

    # ─── Groups ──────────────────────────────────────────────────────

    @property
    def active_groups(self) -> tuple[ComputeGroup, ...]:
        return tuple(g for g in self.groups if g.is_active)

    @property
    def active_group_count(self) -> int:
        return len(self.active_groups)

    @property
    def is_any_group_paused(self) -> bool:
        return any(g.paused for g in self.active_groups)

    @property
    def are_all_groups_paused(self) -> bool:
        active = self.active_groups
        return bool(active) and all(g.paused for g in active)

    @property
    def is_any_group_finishing(self) -> bool:
        return any(g.finish for g in self.active_groups)

    @property
    def are_all_groups_finishing(self) -> bool:
        active = self.active_groups
        return bool(active) and all(g.finish for g in active)

    def group_named(self, name: str) -> ComputeGroup | None:
        return next((g for g in self.groups if g.name == name), None)

    @property
    def paused(self) -> bool:
        """Pause flag of the default group. Prefer the per-group flags."""
        default = self.group_named("")
        return default.paused if default else False

    @property
    def finish(self) -> bool:
        """Finish flag of the default group. Prefer the per-group flags."""
        default = self.group_named("")
        return default.finish if default else False

    # ─── Units ───────────────────────────────────────────────────────

    @property
    def running_units(self) -> tuple[WorkUnit, ...]:
        return tuple(u for u in self.units if u.is_running)

    def units_for(self, group: str) -> tuple[WorkUnit, ...]:
        return tuple(u for u in self.units if u.group == group)

    def ppd_for(self, group: str) -> int:
        return sum(u.ppd for u in self.units_for(group))

    @property
    def total_ppd(self) -> int:
        return sum(u.ppd for u in self.units)

    @property
    def estimated_credits_per_hour(self) -> float:
        return self.total_ppd / 24

    # Orphaned units (group not present in this snapshot) get no group overrides.

    def unit_is_paused(self, unit: WorkUnit) -> bool:
        group = self.group_named(unit.group)
        return (group is not None and group.paused) or unit.is_halted

    def unit_is_finishing(self, unit: WorkUnit) -> bool:
        group = self.group_named(unit.group)
        return group is not None and group.finish

    def unit_is_running(self, unit: WorkUnit) -> bool:
        return unit.state.lower() == "run" and not self.unit_is_paused(unit)

    @property
    def is_paused_or_stopped(self) -> bool:
        return self.are_all_groups_paused or all(u.is_halted for u in self.units)

    # ─── Status ──────────────────────────────────────────────────────

    @property
    def status_text(self) -> str:
        if self.are_all_groups_finishing:
            return "Finishing"
        if self.is_any_group_finishing:
            return "Finishing (partial)"
        if self.units and not self.are_all_groups_paused:
            return "Folding (partial)" if self.is_any_group_paused else "Folding"
        if self.are_all_groups_paused:
            return "Paused"
        return "Idle"
