import json

from interview import SessionStore
from models import ChatEntry, EntryType, FinalSummary
from tools.export import load_store_dict, load_store_json, save_store_json, session_from_dict, session_to_dict, store_to_dict


def _populated(store, questions):
    done = store.create(name="Ada", email="ada@example.com", phone="5551234567")
    store.start_interview(done.session_id, questions)
    store.append_chat(done.session_id, ChatEntry.create(EntryType.QUESTION, "Q1", question_index=0, options={"A": "x"}))
    store.submit_answer(done.session_id, 0, "A", 7)
    store.score_question(done.session_id, 0, 10, "Correct!")
    store.update_remaining_time(done.session_id, 11)
    pending = store.create(name="Grace")
    store.set_current(done.session_id)
    return done, pending


def test_session_round_trip(store, questions):
    done, _ = _populated(store, questions)
    done.final_summary = FinalSummary(10, 60, 16.7, "partial", narrative_available=False)
    data = json.loads(json.dumps(session_to_dict(done)))
    restored = session_from_dict(data)
    assert restored == done
    assert restored.questions[0].time_limit == 20


def test_store_round_trip_keeps_order_and_pointer(store, questions):
    done, pending = _populated(store, questions)
    data = json.loads(json.dumps(store_to_dict(store)))
    other = SessionStore()
    other.create(name="stale")
    load_store_dict(other, data)
    assert [s.session_id for s in other.all()] == [pending.session_id, done.session_id]
    assert other.current_id == done.session_id
    assert other.get(done.session_id).remaining_time == 11
    assert other.get(done.session_id) == done


def test_store_json_file(tmp_path, store, questions):
    _populated(store, questions)
    path = tmp_path / "sessions.json"
    save_store_json(store, str(path))
    other = SessionStore()
    load_store_json(other, str(path))
    assert [s.session_id for s in other.all()] == [s.session_id for s in store.all()]
