import logging
import threading
from typing import Callable, Dict, Hashable, Optional

from .types import BrowserSessionProtocol


logger = logging.getLogger(__name__)

SessionFactory = Callable[[], BrowserSessionProtocol]


def current_worker() -> int:
    return threading.get_ident()


class SessionPool:
    """Browser sessions keyed by worker identity.

    A worker only ever touches its own session, so the lock guards the table
    and is never held while a session is created or used.
    """

    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self._sessions: Dict[Hashable, BrowserSessionProtocol] = {}
        self._lock = threading.Lock()

    def acquire(self, worker_id: Optional[Hashable] = None) -> BrowserSessionProtocol:
        key = current_worker() if worker_id is None else worker_id
        with self._lock:
            session = self._sessions.get(key)
        if session is not None:
            return session
        logger.info("Creating browser session for worker %s", key)
        session = self._factory()
        with self._lock:
            self._sessions[key] = session
        return session

    def get(self, worker_id: Optional[Hashable] = None) -> Optional[BrowserSessionProtocol]:
        key = current_worker() if worker_id is None else worker_id
        with self._lock:
            return self._sessions.get(key)

    def abort(self, worker_id: Optional[Hashable] = None) -> None:
        key = current_worker() if worker_id is None else worker_id
        with self._lock:
            session = self._sessions.pop(key, None)
        if session is None:
            return
        logger.info("Closing browser session for worker %s", key)
        session.quit()

    def abort_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.items())
            self._sessions.clear()
        for key, session in sessions:
            try:
                session.quit()
            except Exception:
                logger.warning("Failed to close browser session for worker %s", key, exc_info=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
