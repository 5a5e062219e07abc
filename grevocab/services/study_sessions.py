"""
In-memory home for each user's running study session and checklist
"""
from typing import Callable, Dict, Optional

import structlog

from grevocab.services.scheduler import ChecklistSession, StudySession
from grevocab.services.ticker import AsyncioTicker

logger = structlog.get_logger()


class SessionNotFoundError(LookupError):
    pass


class SessionRegistry:
    """At most one timed session and one checklist per user.

    A timed session owns a one-second ticker while it is active and not paused;
    pausing, finishing, resetting or replacing the session cancels it.
    """

    def __init__(self, ticker_factory: Callable = AsyncioTicker,
                 on_change: Optional[Callable[[str, StudySession], None]] = None):
        self.ticker_factory = ticker_factory
        self.on_change = on_change
        self._timed: Dict[str, StudySession] = {}
        self._tickers: Dict[str, object] = {}
        self._checklists: Dict[str, ChecklistSession] = {}

    # ----------------- timed sessions -----------------

    def _cancel_ticker(self, key: str) -> None:
        ticker = self._tickers.pop(key, None)
        if ticker is not None:
            ticker.cancel()

    def _start_ticker(self, key: str, session: StudySession) -> None:
        self._cancel_ticker(key)

        def on_tick() -> bool:
            advanced = session.tick()
            if advanced and self.on_change is not None:
                self.on_change(key, session)
            if not session.is_active:
                self._tickers.pop(key, None)
                return False
            return True

        ticker = self.ticker_factory(on_tick)
        ticker.start()
        self._tickers[key] = ticker

    def _sync_ticker(self, key: str, session: StudySession) -> None:
        if session.is_active and not session.is_paused:
            if key not in self._tickers:
                self._start_ticker(key, session)
        else:
            self._cancel_ticker(key)

    def start_timed(self, user_id, session: StudySession) -> StudySession:
        key = str(user_id)
        self._cancel_ticker(key)
        self._timed[key] = session
        self._sync_ticker(key, session)
        logger.info("study_session_started", user_id=key, words=len(session.words),
                    auto_advance=session.settings.auto_advance)
        return session

    def get_timed(self, user_id) -> StudySession:
        session = self._timed.get(str(user_id))
        if session is None:
            raise SessionNotFoundError("No study session in progress")
        return session

    def has_ticker(self, user_id) -> bool:
        return str(user_id) in self._tickers

    def advance(self, user_id) -> StudySession:
        key = str(user_id)
        session = self.get_timed(key)
        session.advance()
        # a fresh ticker restarts the one-second cadence for the new word
        self._cancel_ticker(key)
        self._sync_ticker(key, session)
        if not session.is_active:
            logger.info("study_session_completed", user_id=key, words_studied=session.words_studied,
                        total_time=session.total_time)
        return session

    def tick(self, user_id) -> StudySession:
        key = str(user_id)
        session = self.get_timed(key)
        session.tick()
        self._sync_ticker(key, session)
        return session

    def toggle_pause(self, user_id) -> StudySession:
        key = str(user_id)
        session = self.get_timed(key)
        session.toggle_pause()
        self._sync_ticker(key, session)
        return session

    def toggle_definition(self, user_id) -> StudySession:
        session = self.get_timed(user_id)
        session.toggle_definition()
        return session

    def reset_timed(self, user_id) -> None:
        key = str(user_id)
        self._cancel_ticker(key)
        if self._timed.pop(key, None) is not None:
            logger.info("study_session_reset", user_id=key)

    # ----------------- checklists -----------------

    def start_checklist(self, user_id, checklist: ChecklistSession) -> ChecklistSession:
        self._checklists[str(user_id)] = checklist
        logger.info("checklist_started", user_id=str(user_id), words=len(checklist.items))
        return checklist

    def get_checklist(self, user_id) -> ChecklistSession:
        checklist = self._checklists.get(str(user_id))
        if checklist is None:
            raise SessionNotFoundError("No checklist in progress")
        return checklist

    def toggle_item(self, user_id, index: int) -> ChecklistSession:
        checklist = self.get_checklist(user_id)
        checklist.toggle_item(index)
        if checklist.is_complete:
            logger.info("checklist_completed", user_id=str(user_id), total_time=checklist.total_time)
        return checklist

    def reset_checklist(self, user_id) -> None:
        self._checklists.pop(str(user_id), None)

    def clear(self) -> None:
        for key in list(self._tickers):
            self._cancel_ticker(key)
        self._timed.clear()
        self._checklists.clear()

