"""Turn one raw agent message into a ClientState.

The agent pushes a full JSON object describing itself whenever a connection
is (re)established. Arrays are incremental updates and are not merged; text
that is not JSON at all (keep-alives) is ignored. Neither case is an error.

Field access goes through a small set of typed readers with one default per
type, so a malformed sub-structure only ever costs that one field:

    str   -> ""  (or a placeholder such as "Unknown")
    int   -> 0
    float -> 0.0
    bool  -> False
    list  -> ()
    dict  -> {}
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from foldbar.models import ClientState, ComputeGroup, WorkUnit

UNKNOWN = "Unknown"

log = logger.bind(component="parser")

type JsonObject = Mapping[str, Any]

_EMPTY: JsonObject = {}


# ─── Typed readers ───────────────────────────────────────────────────


def _obj(value: Any) -> JsonObject:
    return value if isinstance(value, Mapping) else _EMPTY


def _path(obj: JsonObject, *keys: str) -> Any:
    current: Any = obj
    for key in keys:
        current = _obj(current).get(key)
    return current


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _int(value: Any) -> int:
    match value:
        case bool():
            return 0
        case int():
            return value
        case float() if value.is_integer():
            return int(value)
        case _:
            return 0


def _float(value: Any) -> float | None:
    match value:
        case bool():
            return None
        case int() | float():
            try:
                number = float(value)
            except OverflowError:
                return None
            return number if math.isfinite(number) else None
        case _:
            return None


def _bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _count(value: Any) -> int:
    match value:
        case str():
            return 0
        case Sequence() | Mapping():
            return len(value)
        case _:
            return 0


# ─── Sections ────────────────────────────────────────────────────────


def _parse_groups(raw: Any) -> tuple[ComputeGroup, ...]:
    groups = _obj(raw)
    parsed: list[ComputeGroup] = []
    for index, (name, data) in enumerate(groups.items()):
        if not isinstance(name, str):
            continue
        group = _obj(data)
        config = _obj(group.get("config"))
        parsed.append(
            ComputeGroup(
                index=index,
                name=name,
                description="Default Group" if not name else f"Group {name}",
                idle="wait" in group,
                paused=_bool(config.get("paused")),
                finish=_bool(config.get("finish")),
                cpus=_int(config.get("cpus")),
                gpus=_count(config.get("gpus")),
            )
        )
    return tuple(parsed)


def _progress_percent(unit: JsonObject) -> float:
    fraction = _float(unit.get("wu_progress"))
    if fraction is None:
        fraction = _float(unit.get("progress"))
    percent = (fraction or 0.0) * 100.0
    return percent if math.isfinite(percent) else 0.0


def _parse_unit(unit: JsonObject) -> WorkUnit:
    return WorkUnit(
        id=_str(unit.get("id")),
        state=_str(unit.get("state"), "unknown"),
        project=_int(_path(unit, "assignment", "project")),
        run=_int(_path(unit, "wu", "run")),
        clone=_int(_path(unit, "wu", "clone")),
        gen=_int(_path(unit, "wu", "gen")),
        core=_str(_path(unit, "assignment", "core", "type")),
        progress=_progress_percent(unit),
        eta=_str(unit.get("eta")),
        ppd=_int(unit.get("ppd")),
        credit_estimate=_int(_path(unit, "assignment", "credit")),
        waiting_on=_str(unit.get("waitingon")),
        group=_str(unit.get("group")),
    )


def _parse_units(raw: Any) -> tuple[WorkUnit, ...]:
    if isinstance(raw, str) or not isinstance(raw, Sequence):
        return ()
    units = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            log.debug("Skipping unit entry of type {kind}", kind=type(entry).__name__)
            continue
        units.append(_parse_unit(entry))
    return tuple(units)


def parse_client_state(data: JsonObject) -> ClientState:
    """Build a snapshot from an already decoded full-state object."""
    return ClientState(
        version=_str(_path(data, "info", "version"), UNKNOWN),
        user=_str(_path(data, "config", "user")),
        team=_int(_path(data, "config", "team")),
        hostname=_str(_path(data, "info", "hostname"), UNKNOWN),
        cpus=_int(_path(data, "info", "cpus")),
        gpus=_int(_path(data, "info", "gpus")),
        units=_parse_units(data.get("units")),
        groups=_parse_groups(data.get("groups")),
    )


def parse_message(text: str | bytes, *, mock: bool = False) -> ClientState | None:
    """Parse one inbound frame.

    Args:
        text: Raw frame payload.
        mock: Replace any full-state object with the fixed mock snapshot.

    Returns:
        A new ClientState, or None when the frame carries no full snapshot.
    """
    try:
        decoded = json.loads(text)
    except (ValueError, RecursionError):
        log.trace("Ignoring non-JSON frame ({size} chars)", size=len(text))
        return None

    match decoded:
        case dict():
            if mock:
                from foldbar.mock import mock_client_state

                return mock_client_state()
            return parse_client_state(decoded)
        case list():
            # TODO: merge incremental updates once their shape is characterized
            log.trace("Ignoring incremental update with {n} entries", n=len(decoded))
            return None
        case _:
            return None
