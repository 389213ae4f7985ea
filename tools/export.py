from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict

from interview import SessionStore
from models import CandidateSession, ChatEntry, FinalSummary, Question


def session_to_dict(session: CandidateSession) -> Dict[str, Any]:
    return asdict(session)


def session_from_dict(data: Dict[str, Any]) -> CandidateSession:
    fields = dict(data)
    fields["questions"] = [
        Question(
            difficulty=q["difficulty"],
            question=q["question"],
            options=dict(q["options"]),
            correct_answer=q["correct_answer"],
            answer=q.get("answer"),
            time_spent=q.get("time_spent"),
            score=q.get("score"),
            feedback=q.get("feedback"),
        )
        for q in data.get("questions", [])
    ]
    fields["chat_history"] = [ChatEntry(**e) for e in data.get("chat_history", [])]
    summary = data.get("final_summary")
    fields["final_summary"] = FinalSummary(**summary) if summary else None
    return CandidateSession(**fields)


def store_to_dict(store: SessionStore) -> Dict[str, Any]:
    return {
        "order": [s.session_id for s in store.all()],
        "current_id": store.current_id,
        "sessions": {s.session_id: session_to_dict(s) for s in store.all()},
    }


def load_store_dict(store: SessionStore, data: Dict[str, Any]) -> None:
    """Replace the store's contents with an export made by store_to_dict."""
    store.reset()
    sessions = data.get("sessions", {})
    for sid in data.get("order", list(sessions)):
        store.add(session_from_dict(sessions[sid]))
    current = data.get("current_id")
    if current in store:
        store.set_current(current)


def save_session_json(session: CandidateSession, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(session_to_dict(session), f, indent=2)


def save_store_json(store: SessionStore, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(store_to_dict(store), f, indent=2)


def load_store_json(store: SessionStore, path: str) -> None:
    with open(path, "r", encoding="utf-8") as f:
        load_store_dict(store, json.load(f))
