import time
import uuid
from typing import Callable, Dict, List, Optional

from .errors import SessionBusyError, SessionNotFoundError, UnknownFieldError
from .schemas import AssessmentResult, PatientProfile, VitalsProfile

PROFILE_TYPES = {
    "structured": PatientProfile,
    "narrative": VitalsProfile,
}


class FormSession:
    """
    Server-side state of one assessment form.

    All mutation happens on the event loop, one handler at a time, so the busy
    flag needs no lock.
    """

    def __init__(self, mode: str, session_id: Optional[str] = None):
        if mode not in PROFILE_TYPES:
            raise ValueError(f"Unknown mode: {mode}")
        self.session_id = session_id or str(uuid.uuid4())
        self.mode = mode
        self.profile: PatientProfile = PROFILE_TYPES[mode]()
        self.symptoms = ""
        self.busy = False
        self.result: Optional[AssessmentResult] = None
        self.report: Optional[str] = None

    def update_field(self, field: str, value: str) -> None:
        if field not in type(self.profile).model_fields:
            raise UnknownFieldError(field, self.mode)
        self.profile = self.profile.model_copy(update={field: value})

    def update_symptoms(self, text: str) -> None:
        self.symptoms = text

    def reset(self, confirm: bool) -> bool:
        """Clear everything, but only when the user confirmed it."""
        if not confirm:
            return False
        if self.busy:
            raise SessionBusyError("Analysis in progress; wait for it to finish before resetting.")
        self.profile = PROFILE_TYPES[self.mode]()
        self.symptoms = ""
        self.result = None
        self.report = None
        return True


class SessionStore:
    """
    In-memory sessions keyed by id.

    `prune` drops sessions untouched for `idle_timeout` seconds. A session with
    a request in flight is never dropped.
    """

    def __init__(self, idle_timeout: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._sessions: Dict[str, FormSession] = {}
        self._touched: Dict[str, float] = {}

    def create(self, mode: str) -> FormSession:
        session = FormSession(mode)
        self._sessions[session.session_id] = session
        self._touched[session.session_id] = self._clock()
        return session

    def get(self, session_id: str) -> FormSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        self._touched[session_id] = self._clock()
        return session

    def discard(self, session_id: str) -> None:
        session = self.get(session_id)
        if session.busy:
            raise SessionBusyError("Analysis in progress; wait for it to finish before discarding.")
        del self._sessions[session_id]
        del self._touched[session_id]

    def prune(self) -> List[str]:
        """Drop idle sessions and return their ids."""
        cutoff = self._clock() - self.idle_timeout
        expired = [
            sid for sid, touched in self._touched.items()
            if touched < cutoff and not self._sessions[sid].busy
        ]
        for sid in expired:
            del self._sessions[sid]
            del self._touched[sid]
        return expired

    def __len__(self) -> int:
        return len(self._sessions)
