from __future__ import annotations

from enum import Enum


class RunState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    LAUNCHING = "launching"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DETACHED = "detached"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RESOLVING}),
    RunState.RESOLVING: frozenset({RunState.LAUNCHING, RunState.FAILED}),
    RunState.LAUNCHING: frozenset(
        {RunState.RUNNING, RunState.DETACHED, RunState.FAILED}
    ),
    RunState.RUNNING: frozenset({RunState.SUCCEEDED, RunState.FAILED}),
    RunState.SUCCEEDED: frozenset(),
    RunState.FAILED: frozenset(),
    RunState.DETACHED: frozenset(),
}

FINAL_STATES = frozenset({RunState.SUCCEEDED, RunState.FAILED, RunState.DETACHED})


def can_transition(current: RunState, target: RunState) -> bool:
    return target in _TRANSITIONS[current]


def advance(current: RunState, target: RunState) -> RunState:
    if not can_transition(current, target):
        raise ValueError(f"Illegal run state transition: {current.value} -> {target.value}")
    return target


def is_final(state: RunState) -> bool:
    return state in FINAL_STATES


def is_busy(state: RunState) -> bool:
    return state in (RunState.RESOLVING, RunState.LAUNCHING, RunState.RUNNING)
