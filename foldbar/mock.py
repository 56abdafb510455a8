"""Fixed snapshot served in mock mode.

Group names are prefixed with ``mock-`` so they never collide with groups a
real agent reports.
"""

from __future__ import annotations

from foldbar.models import ClientState, ComputeGroup, WorkUnit

_GROUPS = (
    # name, description, paused, finish, cpus, gpus
    ("mock-gpu", "Mock GPU Group", True, False, 0, 1),
    ("mock-secondary", "Mock Secondary CPU Group", False, False, 4, 0),
    ("mock-high-perf", "Mock High Performance Group", False, True, 8, 2),
    ("mock-backup", "Mock Backup Group", True, False, 2, 0),
    ("mock-mixed", "Mock Mixed CPU+GPU Group", False, False, 6, 3),
    ("mock-power-saver", "Mock Power Saver Group", False, True, 1, 0),
)


def mock_groups() -> tuple[ComputeGroup, ...]:
    return tuple(
        ComputeGroup(
            index=index,
            name=name,
            description=description,
            paused=paused,
            finish=finish,
            cpus=cpus,
            gpus=gpus,
        )
        for index, (name, description, paused, finish, cpus, gpus) in enumerate(_GROUPS)
    )


def mock_units() -> tuple[WorkUnit, ...]:
    # Units in paused groups report zero PPD, like the real agent does.
    return (
        WorkUnit(
            id="mock-gpu-unit", state="paused", project=18764, run=234, clone=89, gen=12,
            core="0x23", progress=67.5, eta="Paused", ppd=0, credit_estimate=125000,
            group="mock-gpu",
        ),
        WorkUnit(
            id="mock-secondary-unit", state="running", project=16927, run=45, clone=123, gen=8,
            core="0xa8", progress=23.7, eta="3:45:00", ppd=4500, credit_estimate=3200,
            group="mock-secondary",
        ),
        WorkUnit(
            id="mock-highperf-unit", state="running", project=17805, run=12, clone=301, gen=44,
            core="0x22", progress=91.2, eta="0:18:30", ppd=285000, credit_estimate=98000,
            group="mock-high-perf",
        ),
        WorkUnit(
            id="mock-backup-unit", state="paused", project=16930, run=7, clone=56, gen=3,
            core="0xa8", progress=12.4, eta="Paused", ppd=0, credit_estimate=2100,
            group="mock-backup",
        ),
        WorkUnit(
            id="mock-mixed-unit", state="running", project=18201, run=88, clone=14, gen=27,
            core="0x23", progress=45.0, eta="2:10:00", ppd=410000, credit_estimate=150000,
            group="mock-mixed",
        ),
        WorkUnit(
            id="mock-powersaver-unit", state="running", project=16944, run=3, clone=9, gen=61,
            core="0xa8", progress=78.9, eta="1:05:00", ppd=1200, credit_estimate=1800,
            group="mock-power-saver",
        ),
    )


def mock_client_state() -> ClientState:
    return ClientState(
        version="8.4.9 (Mock)",
        user="MockUser123",
        team=234567,
        hostname="MockMachine",
        cpus=16,
        gpus=2,
        units=mock_units(),
        groups=mock_groups(),
    )
