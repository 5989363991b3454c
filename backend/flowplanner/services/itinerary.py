"""
Pure operations over a Flow's stop sequence.

Every function takes a Flow and returns a new Flow; the input is never
modified. ``total_duration`` is recomputed from the resulting stops and
checked before anything is returned.

Reordering keeps each stop's previously scheduled time unless ``retime`` is
requested, in which case times are rebuilt sequentially from the flow's
original start time.
"""
import dataclasses
import re
from typing import Any, Iterable, List, Mapping, Optional

from flowplanner.core.errors import FlowInvariantError
from flowplanner.models.domain import (
    SWAPPABLE_FIELDS,
    EditInstruction,
    Flow,
    FlowStop,
)

MAX_TAGS = 3
_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")


def format_time(minutes_since_midnight: int) -> str:
    h = (minutes_since_midnight // 60) % 24
    m = minutes_since_midnight % 60
    period = "PM" if h >= 12 else "AM"
    display_hour = h - 12 if h > 12 else (12 if h == 0 else h)
    return f"{display_hour}:{m:02d} {period}"


def parse_time(value: str) -> Optional[int]:
    match = _TIME_RE.match(value or "")
    if not match:
        return None
    hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if hour == 12:
        hour = 0
    if period == "PM":
        hour += 12
    return hour * 60 + minute


def check_invariants(flow: Flow) -> Flow:
    expected = sum(s.duration for s in flow.stops)
    if flow.total_duration != expected:
        raise FlowInvariantError(
            f"total duration {flow.total_duration} does not match stops ({expected})"
        )
    ids = [s.id for s in flow.stops]
    if len(ids) != len(set(ids)):
        raise FlowInvariantError("stop ids are not unique within the flow")
    for stop in flow.stops:
        if stop.duration <= 0:
            raise FlowInvariantError(f"stop {stop.id} has non-positive duration")
        if len(stop.tags) > MAX_TAGS:
            raise FlowInvariantError(f"stop {stop.id} has more than {MAX_TAGS} tags")
    return flow


def with_stops(flow: Flow, stops: Iterable[FlowStop]) -> Flow:
    stops = list(stops)
    updated = dataclasses.replace(
        flow, stops=stops, total_duration=sum(s.duration for s in stops)
    )
    return check_invariants(updated)


def retime(flow: Flow, anchor_minutes: int) -> Flow:
    clock = anchor_minutes
    stops: List[FlowStop] = []
    for stop in flow.stops:
        stops.append(dataclasses.replace(stop, time=format_time(clock)))
        clock += stop.duration
    return with_stops(flow, stops)


def _index_of(flow: Flow, stop_id: str) -> int:
    for i, stop in enumerate(flow.stops):
        if stop.id == stop_id:
            return i
    return -1


def _start_minutes(flow: Flow) -> Optional[int]:
    if not flow.stops:
        return None
    return parse_time(flow.stops[0].time)


def _move(flow: Flow, stop_id: str, offset: int, retime_stops: bool) -> Flow:
    index = _index_of(flow, stop_id)
    target = index + offset
    if index == -1 or not 0 <= target < len(flow.stops):
        return with_stops(flow, flow.stops)

    anchor = _start_minutes(flow)
    stops = list(flow.stops)
    stops[index], stops[target] = stops[target], stops[index]
    moved = with_stops(flow, stops)
    if retime_stops and anchor is not None:
        return retime(moved, anchor)
    return moved


def move_up(flow: Flow, stop_id: str, retime_stops: bool = False) -> Flow:
    return _move(flow, stop_id, -1, retime_stops)


def move_down(flow: Flow, stop_id: str, retime_stops: bool = False) -> Flow:
    return _move(flow, stop_id, 1, retime_stops)


def remove(flow: Flow, stop_id: str) -> Flow:
    return with_stops(flow, [s for s in flow.stops if s.id != stop_id])


def _merge_tags(existing: List[str], replacement: Any) -> List[str]:
    if not isinstance(replacement, list):
        return list(existing)
    # The first tag names the activity slot and survives a venue swap.
    merged: List[str] = existing[:1]
    for tag in replacement:
        if isinstance(tag, str) and tag and tag not in merged:
            merged.append(tag)
    return merged[:MAX_TAGS]


def swap_stop(stop: FlowStop, replacement: Mapping[str, Any]) -> FlowStop:
    changes = {
        key: value
        for key, value in replacement.items()
        if key in SWAPPABLE_FIELDS and value is not None
    }
    if "tags" in changes:
        changes["tags"] = _merge_tags(stop.tags, changes["tags"])
    return dataclasses.replace(stop, **changes)


def apply_swap(flow: Flow, stop_index: int, replacement: Mapping[str, Any]) -> Flow:
    if not 0 <= stop_index < len(flow.stops):
        return with_stops(flow, flow.stops)
    stops = list(flow.stops)
    stops[stop_index] = swap_stop(stops[stop_index], replacement)
    return with_stops(flow, stops)


def apply_removals(flow: Flow, indices: Iterable[int]) -> Flow:
    drop = set(indices)
    return with_stops(flow, [s for i, s in enumerate(flow.stops) if i not in drop])


def apply_instruction(flow: Flow, instruction: EditInstruction) -> Flow:
    """Apply every valid entry of an edit instruction.

    Swaps and removals both address positions in the flow as it was before the
    edit. Entries pointing outside the flow are skipped.
    """
    if not instruction.is_update or instruction.is_empty:
        return with_stops(flow, flow.stops)

    updated = flow
    for swap in instruction.swaps:
        updated = apply_swap(updated, swap.index, swap.changes)
    return apply_removals(updated, instruction.removals)
