"""Inbound channel messages as a closed set of command types.

``parse_command`` turns a raw message into one of the classes registered in
``COMMANDS``; any other ``type`` is rejected with ``InvalidInput``. ``apply``
runs the command against a session whose lock the caller holds and returns
the payloads to broadcast to the whole room, in order.
"""

import json
from typing import Any, Dict, List, Optional

from decider.errors import InvalidInput
from decider.models import Session
from decider.services.sessions import phases
from decider.services.sessions.ranking import rank


class Command:
    type = ''

    @classmethod
    def from_message(cls, msg: Dict[str, Any]) -> 'Command':
        return cls()

    def apply(self, session: Session, participant_id: str) -> List[dict]:
        raise NotImplementedError


class Join(Command):
    type = 'join'

    def __init__(self, name: Optional[str] = None, existing_participant_id: Optional[str] = None):
        self.name = name
        self.existing_participant_id = existing_participant_id

    @classmethod
    def from_message(cls, msg):
        existing = msg.get('existingParticipantId')
        if existing is not None and not isinstance(existing, str):
            raise InvalidInput('Invalid participant id')
        return cls(msg.get('name'), existing)


class AddItem(Command):
    type = 'add-item'

    def __init__(self, text):
        self.text = text

    @classmethod
    def from_message(cls, msg):
        return cls(msg.get('text'))

    def apply(self, session, participant_id):
        item = session.add_item(participant_id, self.text)
        return [{'type': 'item-added', 'item': item.to_dict()}]


class RemoveItem(Command):
    type = 'remove-item'

    def __init__(self, item_id):
        self.item_id = item_id

    @classmethod
    def from_message(cls, msg):
        return cls(msg.get('itemId'))

    def apply(self, session, participant_id):
        item = session.remove_item(participant_id, self.item_id)
        return [{'type': 'item-removed', 'itemId': item.id}]


class Vote(Command):
    type = 'vote'

    def __init__(self, item_id, vote):
        self.item_id = item_id
        self.vote = vote

    @classmethod
    def from_message(cls, msg):
        return cls(msg.get('itemId'), msg.get('vote'))

    def apply(self, session, participant_id):
        item = session.vote(participant_id, self.item_id, self.vote)
        return [{'type': 'vote-updated', 'itemId': item.id, 'participantId': participant_id, 'vote': self.vote}]


class SetScoring(Command):
    type = 'set-scoring'

    def __init__(self, favor, neutral, against):
        self.favor = favor
        self.neutral = neutral
        self.against = against

    @classmethod
    def from_message(cls, msg):
        return cls(msg.get('favor'), msg.get('neutral'), msg.get('against'))

    def apply(self, session, participant_id):
        rules = session.set_scoring(participant_id, self.favor, self.neutral, self.against)
        if session.phase == 'results':
            session.results = rank(session.items.values(), session.participants, session.scoring_rules)
        else:
            session.results = None
        return [{'type': 'scoring-updated', 'scoringRules': rules, 'results': session.results}]


def _done_payload(session: Session, participant_id: str, is_done: bool) -> dict:
    done_count, total_connected = session.done_counts()
    return {
        'type': 'done-updated',
        'participantId': participant_id,
        'isDone': is_done,
        'doneCount': done_count,
        'totalConnected': total_connected,
    }


class MarkDone(Command):
    type = 'mark-done'

    def apply(self, session, participant_id):
        phase = session.phase
        is_done = session.toggle_done(participant_id)
        payloads = [_done_payload(session, participant_id, is_done)]
        advanced = phases.auto_advance(session, phase)
        if advanced:
            payloads.append(advanced)
        return payloads


class SetDone(Command):
    type = 'set-done'

    def __init__(self, is_done):
        self.is_done = is_done

    @classmethod
    def from_message(cls, msg):
        is_done = msg.get('isDone')
        if not isinstance(is_done, bool):
            raise InvalidInput('isDone must be a boolean')
        return cls(is_done)

    def apply(self, session, participant_id):
        phase = session.phase
        is_done = session.set_done(participant_id, self.is_done)
        payloads = [_done_payload(session, participant_id, is_done)]
        advanced = phases.auto_advance(session, phase)
        if advanced:
            payloads.append(advanced)
        return payloads


class StartVoting(Command):
    type = 'start-voting'

    def apply(self, session, participant_id):
        return [phases.start_voting(session, participant_id)]


class ShowResults(Command):
    type = 'show-results'

    def apply(self, session, participant_id):
        return [phases.show_results(session, participant_id)]


class PrevPhase(Command):
    type = 'prev-phase'

    def apply(self, session, participant_id):
        return [phases.prev_phase(session, participant_id)]


COMMANDS = {
    cls.type: cls
    for cls in (Join, AddItem, RemoveItem, Vote, SetScoring, MarkDone, SetDone,
                StartVoting, ShowResults, PrevPhase)
}


def decode_message(raw) -> Dict[str, Any]:
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise InvalidInput('Invalid message')
    if not isinstance(raw, dict):
        raise InvalidInput('Invalid message')
    return raw


def parse_command(raw, msg_type: Optional[str] = None) -> Command:
    msg = decode_message(raw)
    msg_type = msg_type or msg.get('type')
    cls = COMMANDS.get(msg_type) if isinstance(msg_type, str) else None
    if cls is None:
        raise InvalidInput(f'Unknown message type: {msg_type}')
    return cls.from_message(msg)
