"""Phase transitions for a session.

Each function mutates the session (the caller holds ``session.lock``) and
returns the payload to broadcast to the whole room.
"""

import logging
from typing import Optional

from decider.errors import PreconditionFailed, Unauthorized, WrongPhase
from decider.models import Session
from .ranking import rank

logger = logging.getLogger(__name__)


def _require_creator(session: Session, participant_id: str, action: str) -> None:
    if not session.is_creator(participant_id):
        raise Unauthorized(f'Only the creator can {action}')


def _enter_voting(session: Session) -> dict:
    if session.phase != 'adding':
        raise WrongPhase(f'Cannot start voting during the {session.phase} phase')
    if not session.items:
        raise PreconditionFailed('Add at least one item before voting')
    session.phase = 'voting'
    session.done_participants.clear()
    logger.info(f"[phase] session={session.id} adding -> voting")
    return {'type': 'phase-changed', 'phase': session.phase}


def _enter_results(session: Session) -> dict:
    if session.phase != 'voting':
        raise WrongPhase(f'Cannot show results during the {session.phase} phase')
    session.phase = 'results'
    session.done_participants.clear()
    session.results = rank(session.items.values(), session.participants, session.scoring_rules)
    logger.info(f"[phase] session={session.id} voting -> results items={len(session.results)}")
    return {'type': 'results', 'phase': session.phase, 'results': session.results}


def start_voting(session: Session, participant_id: str) -> dict:
    _require_creator(session, participant_id, 'start voting')
    return _enter_voting(session)


def show_results(session: Session, participant_id: str) -> dict:
    _require_creator(session, participant_id, 'show results')
    return _enter_results(session)


def prev_phase(session: Session, participant_id: str) -> dict:
    _require_creator(session, participant_id, 'go back a phase')
    if session.phase == 'voting':
        session.clear_votes()
        session.phase = 'adding'
    elif session.phase == 'results':
        session.results = None
        session.phase = 'voting'
    else:
        raise WrongPhase('Already at the first phase')
    session.done_participants.clear()
    logger.info(f"[phase] session={session.id} back to {session.phase}")
    return {'type': 'phase-changed', 'phase': session.phase}


def auto_advance(session: Session, expected_phase: str) -> Optional[dict]:
    """Advance when every connected participant is done.

    ``expected_phase`` is the phase observed when readiness changed; nothing
    happens if the session has moved on since.
    """
    if session.phase != expected_phase or not session.all_connected_done():
        return None
    if expected_phase == 'adding':
        if not session.items:
            logger.info(f"[auto-advance-skip] session={session.id} no items to vote on")
            return None
        logger.info(f"[auto-advance] session={session.id} all connected participants done")
        return _enter_voting(session)
    if expected_phase == 'voting':
        logger.info(f"[auto-advance] session={session.id} all connected participants done")
        return _enter_results(session)
    return None
