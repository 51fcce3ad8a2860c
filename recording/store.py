from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, DefaultDict, Deque, Dict, Iterable, List, Optional

from core.config import AnalyticsSettings
from core.models import AnalysisGameSession, Session
from telemetry import LogEvent, StructuredLogger, create_logger


class InMemorySessionStore:
    """Document-style store for finished sessions and their analyses.

    Documents are kept as camelCase JSON dicts, the shape the document
    database receives, with bounded per-user retention.
    """

    def __init__(
        self,
        max_per_user: Optional[int] = None,
        logger: Optional[StructuredLogger] = None,
        settings: Optional[AnalyticsSettings] = None,
    ):
        self.settings = settings or AnalyticsSettings.from_env()
        self.max_per_user = max_per_user or self.settings.store_max_per_user
        self.logger = logger or create_logger("store", level=self.settings.log_level_value)
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._analyses: DefaultDict[str, Deque[Dict[str, Any]]] = defaultdict(
            lambda: deque(maxlen=self.max_per_user)
        )

    @classmethod
    def from_settings(cls, settings: AnalyticsSettings) -> "InMemorySessionStore":
        return cls(settings=settings)

    @staticmethod
    def _to_document(model: Session | AnalysisGameSession) -> Dict[str, Any]:
        return model.model_dump(mode="json", by_alias=True)

    def save_session(self, session: Session) -> str:
        doc_id = session.document_id
        self._sessions[doc_id] = self._to_document(session)
        self.logger.info(
            event=LogEvent.STORE_SAVED,
            message="Session saved",
            metadata={"collection": "cognitiveSessions", "id": doc_id, "game_id": session.game_id},
        )
        return doc_id

    def get_session(self, doc_id: str) -> Optional[Session]:
        doc = self._sessions.get(doc_id)
        return Session.model_validate(doc) if doc is not None else None

    def save_analysis(self, analysis: AnalysisGameSession) -> str:
        doc_id = analysis.document_id
        records = self._analyses[analysis.user_id]
        # Same user + start time overwrites, like a keyed document write.
        for existing in list(records):
            if existing["_id"] == doc_id:
                records.remove(existing)
        records.append({"_id": doc_id, **self._to_document(analysis)})
        self.logger.info(
            event=LogEvent.STORE_SAVED,
            message="Analysis saved",
            metadata={
                "collection": "analysisGameSessions",
                "id": doc_id,
                "game_id": analysis.game_id,
                "max_span": analysis.metrics.max_span,
            },
        )
        return doc_id

    def list_analyses(
        self,
        user_id: str,
        game_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[AnalysisGameSession]:
        docs = [d for d in self._analyses.get(user_id, []) if game_id is None or d["gameId"] == game_id]
        analyses = [AnalysisGameSession.model_validate(d) for d in docs]
        if limit <= 0:
            return []
        return sorted(analyses, key=lambda a: a.start_time)[-limit:]

    def latest_analysis(self, user_id: str, game_id: Optional[str] = None) -> Optional[AnalysisGameSession]:
        analyses = self.list_analyses(user_id, game_id=game_id, limit=1)
        return analyses[-1] if analyses else None

    def all_analyses(self) -> Iterable[AnalysisGameSession]:
        for docs in self._analyses.values():
            for doc in docs:
                yield AnalysisGameSession.model_validate(doc)
