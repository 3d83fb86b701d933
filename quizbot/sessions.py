from quizbot.states import Session


class SessionStore:
    """In-memory sessions keyed by Telegram user ID.

    Sessions are created lazily by ``get`` and live until ``clear``. Nothing is
    persisted, a restart drops every running wizard and quiz.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}

    def get(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions.setdefault(user_id, Session())
        return session

    def set(self, user_id: int, session: Session) -> None:
        self._sessions[user_id] = session

    def clear(self, user_id: int) -> None:
        """Drop wizard and quiz state for the user."""
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.clear()
