from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from models import CandidateSession, SessionStatus


class SortKey:
    SCORE = "score"
    DATE = "date"
    NAME = "name"

    ALL = (SCORE, DATE, NAME)


def filter_sessions(
    sessions: Iterable[CandidateSession],
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> List[CandidateSession]:
    needle = (search or "").strip().lower()
    result = []
    for s in sessions:
        if needle and needle not in (s.name or "").lower() and needle not in (s.email or "").lower():
            continue
        if status and status != "all" and s.status != status:
            continue
        result.append(s)
    return result


def sort_sessions(sessions: Iterable[CandidateSession], sort_by: str = SortKey.SCORE) -> List[CandidateSession]:
    if sort_by == SortKey.SCORE:
        # Unscored sessions sink to the bottom.
        return sorted(sessions, key=lambda s: (s.final_score is None, -(s.final_score or 0)))
    if sort_by == SortKey.DATE:
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)
    if sort_by == SortKey.NAME:
        return sorted(sessions, key=lambda s: (s.name or "").casefold())
    raise ValueError(f"unknown sort key: {sort_by}")


def query_sessions(
    sessions: Iterable[CandidateSession],
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: str = SortKey.SCORE,
) -> List[CandidateSession]:
    return sort_sessions(filter_sessions(sessions, search=search, status=status), sort_by=sort_by)


def session_row(session: CandidateSession) -> Dict[str, Any]:
    summary = session.final_summary
    return {
        "session_id": session.session_id,
        "name": session.name,
        "email": session.email,
        "phone": session.phone,
        "status": session.status,
        "final_score": session.final_score,
        "percentage": summary.percentage if summary else None,
        "created_at": session.created_at,
        "completed": session.status == SessionStatus.COMPLETED,
        "progress": f"{session.answered_count()}/{len(session.questions)}",
    }
