import threading
import time
import uuid
from typing import Dict, List, Optional

from decider.errors import InvalidInput, NotFound, NotJoined, Unauthorized, WrongPhase

PHASES = ('adding', 'voting', 'results')
VOTE_VALUES = ('favor', 'neutral', 'against')
DEFAULT_SCORING = {'favor': 2, 'neutral': 0, 'against': -5}
DEFAULT_ITEM_CAP = 100


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_text(text: str) -> str:
    return text.strip().lower()


def _as_int(value) -> Optional[int]:
    # bool is an int subclass but never a valid weight
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class Participant:
    def __init__(self, participant_id: str, name: str, connected: bool = False):
        self.id = participant_id
        self.name = name
        self.connected = connected

    def to_dict(self):
        return {'name': self.name, 'connected': self.connected}


class Item:
    def __init__(self, item_id: str, text: str, added_by: str):
        self.id = item_id
        self.text = text
        self.added_by = added_by
        self.votes: Dict[str, str] = {}

    def to_dict(self):
        return {
            'id': self.id,
            'text': self.text,
            'addedBy': self.added_by,
            'votes': dict(self.votes),
        }


class Session:
    """Authoritative state of one decision session.

    All mutation goes through the methods below while ``lock`` is held by the
    caller (the realtime channel). Methods validate first and raise a
    ``SessionError`` subclass before touching any state.
    """

    def __init__(self, session_id: str, creator_id: str, creator_name: str,
                 name: str = '', creator_ip: Optional[str] = None,
                 lock_navigation: bool = False, item_cap: int = DEFAULT_ITEM_CAP,
                 phase_gated: bool = True):
        self.id = session_id
        self.name = name
        self.creator_id = creator_id
        self.creator_ip = creator_ip
        self.lock_navigation = lock_navigation
        self.item_cap = item_cap
        self.phase_gated = phase_gated
        self.phase = 'adding'
        self.items: Dict[str, Item] = {}
        self.participants: Dict[str, Participant] = {
            creator_id: Participant(creator_id, creator_name, connected=False),
        }
        self.scoring_rules = dict(DEFAULT_SCORING)
        self.done_participants = set()
        self.results: Optional[List[dict]] = None
        self.all_disconnected_at: Optional[float] = None
        self.created_at = time.time()
        self.lock = threading.RLock()

    # ---- participants ----

    def is_creator(self, participant_id: str) -> bool:
        return participant_id == self.creator_id

    def require_participant(self, participant_id: Optional[str]) -> Participant:
        participant = self.participants.get(participant_id) if participant_id else None
        if participant is None:
            raise NotJoined()
        return participant

    def join(self, name: Optional[str] = None,
             existing_participant_id: Optional[str] = None):
        """Attach a participant, reusing ``existing_participant_id`` when known.

        Returns ``(participant, reconnected)``.
        """
        if isinstance(existing_participant_id, str) and existing_participant_id in self.participants:
            participant = self.participants[existing_participant_id]
            participant.connected = True
            self.all_disconnected_at = None
            return participant, True
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput('Name is required')
        participant = Participant(new_id(), name.strip(), connected=True)
        self.participants[participant.id] = participant
        self.all_disconnected_at = None
        return participant, False

    def connected_ids(self) -> set:
        return {pid for pid, p in self.participants.items() if p.connected}

    def done_counts(self):
        connected = self.connected_ids()
        return len(connected & self.done_participants), len(connected)

    def all_connected_done(self) -> bool:
        connected = self.connected_ids()
        return bool(connected) and connected <= self.done_participants

    # ---- items and votes ----

    def _require_phase(self, phase: str, action: str) -> None:
        if self.phase_gated and self.phase != phase:
            raise WrongPhase(f'Cannot {action} during the {self.phase} phase')

    def get_item(self, item_id) -> Item:
        item = self.items.get(item_id) if isinstance(item_id, str) else None
        if item is None:
            raise NotFound('Item not found')
        return item

    def add_item(self, participant_id: str, text) -> Item:
        self._require_phase('adding', 'add items')
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput('Item text required')
        if self.item_cap and len(self.items) >= self.item_cap:
            raise InvalidInput(f'Item limit of {self.item_cap} reached')
        normalized = normalize_text(text)
        if any(normalize_text(i.text) == normalized for i in self.items.values()):
            raise InvalidInput('An item with that name already exists')
        item = Item(new_id(), text.strip(), participant_id)
        self.items[item.id] = item
        return item

    def remove_item(self, participant_id: str, item_id) -> Item:
        self._require_phase('adding', 'remove items')
        item = self.get_item(item_id)
        if item.added_by != participant_id and not self.is_creator(participant_id):
            raise Unauthorized('Not authorized to remove this item')
        del self.items[item.id]
        return item

    def vote(self, participant_id: str, item_id, vote) -> Item:
        if vote not in VOTE_VALUES:
            raise InvalidInput('Invalid vote value')
        self._require_phase('voting', 'vote')
        item = self.get_item(item_id)
        item.votes[participant_id] = vote
        return item

    def clear_votes(self) -> None:
        for item in self.items.values():
            item.votes.clear()

    # ---- scoring and readiness ----

    def set_scoring(self, participant_id: str, favor, neutral, against) -> dict:
        if not self.is_creator(participant_id):
            raise Unauthorized('Only creator can change scoring')
        values = [_as_int(v) for v in (favor, neutral, against)]
        if any(v is None for v in values):
            raise InvalidInput('Scoring values must be integers')
        self.scoring_rules = dict(zip(VOTE_VALUES, values))
        return dict(self.scoring_rules)

    def set_done(self, participant_id: str, is_done: bool) -> bool:
        is_done = bool(is_done)
        currently = participant_id in self.done_participants
        if (self.lock_navigation and currently and not is_done
                and not self.is_creator(participant_id)):
            raise WrongPhase('Navigation is locked; readiness cannot be withdrawn')
        if is_done:
            self.done_participants.add(participant_id)
        else:
            self.done_participants.discard(participant_id)
        return is_done

    def toggle_done(self, participant_id: str) -> bool:
        if self.phase not in ('adding', 'voting'):
            raise WrongPhase(f'Cannot mark done during the {self.phase} phase')
        return self.set_done(participant_id, participant_id not in self.done_participants)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phase': self.phase,
            'creatorId': self.creator_id,
            'lockNavigation': self.lock_navigation,
            'participants': {pid: p.to_dict() for pid, p in self.participants.items()},
            'scoringRules': dict(self.scoring_rules),
            'doneParticipants': sorted(self.done_participants),
            'results': self.results,
            'items': [item.to_dict() for item in self.items.values()],
            'createdAt': self.created_at,
        }
