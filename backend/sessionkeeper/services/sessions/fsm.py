from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from sessionkeeper.errors import InvalidStateTransition
from sessionkeeper.models import PlaySession


class SessionFSM(StateMachine):
    """Guards the session status graph.

    Only ``begin`` (PENDING -> ACTIVE) and ``finish`` (ACTIVE -> ENDED) exist;
    the service layer performs the write, the FSM only decides the target.
    """

    pending = State('Pending', value=PlaySession.PENDING, initial=True)
    active = State('Active', value=PlaySession.ACTIVE)
    ended = State('Ended', value=PlaySession.ENDED, final=True)

    begin = pending.to(active)
    finish = active.to(ended)

    def __init__(self, status: str):
        super().__init__(start_value=status)


def next_status(current: str, event: str) -> str:
    """Status reached by firing ``event`` from ``current``.

    Raises InvalidStateTransition when the graph has no such edge.
    """
    fsm = SessionFSM(current)
    try:
        fsm.send(event)
    except TransitionNotAllowed:
        fsm = None
    if fsm is None or fsm.current_state_value == current:
        raise InvalidStateTransition(f"Cannot {event} a session that is {current}")
    return str(fsm.current_state_value)
