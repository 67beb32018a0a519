import logging
import threading
import time
from typing import Dict, List, Optional

from decider.models import DEFAULT_ITEM_CAP, Session, new_id

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT_SEC = 5 * 60


class SessionRegistry:
    """In-memory owner of every live session, keyed by session id.

    The registry lock guards only the id -> Session mapping; session state is
    guarded by each session's own lock.
    """

    def __init__(self, idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SEC,
                 item_cap: int = DEFAULT_ITEM_CAP, phase_gated: bool = True):
        self.idle_timeout = idle_timeout
        self.item_cap = item_cap
        self.phase_gated = phase_gated
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        self.idle_timeout = float(app.config.get('SESSION_IDLE_TIMEOUT_SEC', DEFAULT_IDLE_TIMEOUT_SEC))
        self.item_cap = int(app.config.get('ITEM_CAP', DEFAULT_ITEM_CAP))
        self.phase_gated = bool(app.config.get('PHASE_GATING', True))
        self.clear()
        app.extensions['session_registry'] = self

    def create(self, creator_id: str, creator_name: str, creator_ip: Optional[str] = None,
               name: str = '', lock_navigation: bool = False) -> Session:
        session = Session(
            new_id(), creator_id, creator_name,
            name=name,
            creator_ip=creator_ip,
            lock_navigation=lock_navigation,
            item_cap=self.item_cap,
            phase_gated=self.phase_gated,
        )
        # Nobody is connected yet; a session nobody ever joins still expires
        session.all_disconnected_at = session.created_at
        with self._lock:
            self._sessions[session.id] = session
        return session

    def get(self, session_id) -> Optional[Session]:
        if not isinstance(session_id, str):
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def all(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def count_by_creator_ip(self, ip: Optional[str]) -> int:
        return sum(1 for s in self.all() if s.creator_ip == ip)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, session: Session, now: float) -> bool:
        return session.all_disconnected_at is not None and now - session.all_disconnected_at >= self.idle_timeout

    def sweep_expired(self, now: Optional[float] = None) -> List[str]:
        """Delete sessions with no connection for longer than the idle timeout.

        A session whose lock is held is mid-command and therefore not idle; it
        is left for the next sweep.
        """
        now = time.time() if now is None else now
        removed = []
        for session in self.all():
            if not session.lock.acquire(blocking=False):
                continue
            try:
                if not self._is_expired(session, now):
                    continue
                with self._lock:
                    if self._sessions.get(session.id) is session:
                        del self._sessions[session.id]
                        removed.append(session.id)
            finally:
                session.lock.release()
        for session_id in removed:
            logger.info(f"[sweep] session={session_id} expired and deleted")
        return removed
