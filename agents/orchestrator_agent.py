from __future__ import annotations

from functools import partial
from typing import Any, BinaryIO, Dict, Optional, Set, Tuple, Union

from interview import AdvanceResult, SessionStateMachine, SessionStore, TimerRegistry, ensure_transition
from models import CandidateSession, ChatEntry, EntryType, Evaluation, Question, SessionStatus
from parsers import extract_email, extract_name, extract_phone, extract_text
from tools.llm_client import LLMClient
from utils.config import AppConfig, load_config
from utils.errors import (
    GenerationFailed,
    InterviewError,
    InvalidTransition,
    NotFound,
    ScoringFailed,
    SummaryFailed,
    ValidationError,
)
from utils.logging import get_logger, session_logger
from utils.telemetry import Telemetry
from .evaluator_agent import EvaluatorAgent, fallback_summary
from .question_agent import QuestionAgent


NO_ANSWER_TEXT = "(No answer provided - time expired)"
GENERATION_FAILED_TEXT = "Failed to generate questions. Please try again."

QuestionKey = Tuple[str, int]


class InterviewOrchestrator:
    """Runs candidate sessions from resume upload to final summary.

    Submissions for one question are serialised through ``_in_flight``: the
    manual path and the timer-expiry path both test-and-set the
    (session, question) key before doing anything, so a question is
    submitted and scored at most once.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        config: Optional[AppConfig] = None,
        question_agent: Optional[QuestionAgent] = None,
        evaluator: Optional[EvaluatorAgent] = None,
        llm: Optional[LLMClient] = None,
    ):
        self.config = config or load_config()
        self.logger = get_logger("agent.orchestrator")
        self.telemetry = Telemetry()
        self.store = store or SessionStore()
        self.machine = SessionStateMachine(self.store, self.config)
        self.timers = TimerRegistry(tick_seconds=self.config.tick_seconds)
        self.question_agent = question_agent or QuestionAgent(
            "question_provider", "Generates the multiple choice question set", llm=llm, config=self.config
        )
        self.evaluator = evaluator or EvaluatorAgent(
            "evaluator", "Scores answers and writes the final summary", llm=llm, config=self.config
        )
        self._staged: Dict[str, str] = {}
        self._in_flight: Set[QuestionKey] = set()
        self._expired: Set[QuestionKey] = set()
        self._scoring_failures: Dict[QuestionKey, int] = {}
        self._generating: Set[str] = set()

    def _log(self, session_id: str):
        return session_logger(self.logger, session_id)

    # -- upload & profile ---------------------------------------------------

    async def upload_resume(
        self,
        source: Union[str, BinaryIO],
        filename: str,
        size: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> CandidateSession:
        """Create a session from a resume.

        Extraction failures propagate and no session is created. A question
        generation failure after upload leaves the session collecting info
        with a notice in its transcript.
        """
        text = extract_text(source, filename)
        email = extract_email(text)
        phone = extract_phone(text)
        name = extract_name(text, email)

        session = self.store.create(
            name=name,
            email=email,
            phone=phone,
            resume_meta={"filename": filename, "size": size, "content_type": content_type},
        )
        self.telemetry.incr("sessions_created")
        self._log(session.session_id).info(
            f"Resume {filename} parsed; missing fields: {session.missing_fields() or 'none'}"
        )
        if self.machine.begin_collection(session.session_id) is None:
            await self._try_start(session.session_id)
        return self.store.get(session.session_id)

    async def submit_field(self, session_id: str, value: str) -> Optional[str]:
        """Answer the current profile prompt; returns the next field asked for."""
        next_field = self.machine.collect_field(session_id, value)
        if next_field is None:
            await self._try_start(session_id)
        return next_field

    async def _try_start(self, session_id: str) -> None:
        try:
            await self.start_interview(session_id)
        except GenerationFailed as e:
            self.store.append_chat(
                session_id, ChatEntry.create(EntryType.BOT, GENERATION_FAILED_TEXT, error=e.reason)
            )

    async def start_interview(self, session_id: str) -> CandidateSession:
        """Fetch the question set and open the first question.

        Safe to call again after a GenerationFailed; the collected profile is
        left untouched.
        """
        session = self.store.get(session_id)
        if session.status != SessionStatus.COLLECTING_INFO:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "interview already started")
        if session.missing_fields():
            raise InvalidTransition(
                session.status, SessionStatus.IN_PROGRESS, f"missing fields: {', '.join(session.missing_fields())}"
            )
        if session_id in self._generating:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "question generation already running")

        self._generating.add(session_id)
        try:
            with self.telemetry.timer("question_gen_ms"):
                questions = await self.question_agent.generate_questions()
        except GenerationFailed as e:
            self.telemetry.incr("generation_failures")
            self._log(session_id).warning(f"Question generation failed: {e.reason}")
            raise
        finally:
            self._generating.discard(session_id)

        if session_id not in self.store:
            raise NotFound(session_id)
        self.machine.begin_interview(session_id, questions)
        self._enter_question(session_id)
        return self.store.get(session_id)

    # -- questions & timer ------------------------------------------------

    def _presented(self, session: CandidateSession, question_index: int) -> bool:
        return any(
            e.type == EntryType.QUESTION and e.metadata.get("question_index") == question_index
            for e in session.chat_history
        )

    def _enter_question(self, session_id: str) -> None:
        session = self.store.get(session_id)
        idx = session.current_question_index
        question = session.current_question()
        if question is None:
            return
        if not self._presented(session, idx):
            self.store.append_chat(
                session_id,
                ChatEntry.create(
                    EntryType.QUESTION,
                    question.question,
                    question_index=idx,
                    difficulty=question.difficulty,
                    time_limit=question.time_limit,
                    options=dict(question.options),
                ),
            )
        persisted = self.store.take_remaining_time(session_id)
        seconds = persisted if persisted is not None else question.time_limit
        self.timers.start(
            session_id,
            idx,
            seconds,
            on_tick=partial(self._on_tick, session_id),
            on_expire=partial(self.handle_expiry, session_id, idx),
        )
        self._log(session_id).info(f"Question {idx + 1} open with {seconds}s on the clock")

    def _on_tick(self, session_id: str, remaining: int) -> None:
        if session_id in self.store:
            self.store.update_remaining_time(session_id, remaining)

    def _time_spent(self, session: CandidateSession, question: Question) -> int:
        timer = self.timers.get(session.session_id)
        if timer is not None and timer.key == (session.session_id, session.current_question_index):
            remaining = timer.remaining
        elif session.remaining_time is not None:
            remaining = session.remaining_time
        else:
            remaining = question.time_limit
        return max(0, question.time_limit - remaining)

    def remaining_time(self, session_id: str) -> Optional[int]:
        """Live countdown value for the session's open question."""
        session = self.store.get(session_id)
        timer = self.timers.get(session_id)
        if timer is not None and timer.key == (session_id, session.current_question_index):
            return timer.remaining
        return session.remaining_time

    def stage_answer(self, session_id: str, label: str) -> str:
        session = self.store.get(session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "interview is not running")
        question = session.current_question()
        if question is None:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "no open question")
        selected = self._check_label(question, label)
        if not selected:
            raise ValidationError("answer", f"Please choose one of {', '.join(sorted(question.options))}")
        self._staged[session_id] = selected
        return selected

    @staticmethod
    def _check_label(question: Question, label: Optional[str]) -> str:
        """Normalise an option label; "" means no answer."""
        selected = (label or "").strip().upper()
        if selected and question.option_text(selected) is None:
            raise ValidationError("answer", f"Please choose one of {', '.join(sorted(question.options))}")
        return selected

    async def handle_expiry(self, session_id: str, question_index: int) -> None:
        """Auto-submit whatever is staged once the countdown hits zero."""
        session = self.store.find(session_id)
        if session is None or session.status != SessionStatus.IN_PROGRESS:
            return
        if session.current_question_index != question_index:
            return
        key = (session_id, question_index)
        if key in self._in_flight:
            # The in-flight submission falls back to the default score if it fails.
            self._expired.add(key)
            return
        self.telemetry.incr("auto_submits")
        try:
            await self.submit_answer(session_id, auto=True)
        except InterviewError as e:
            self._log(session_id).error(f"Auto-submit of question {question_index + 1} failed: {e}")

    # -- submission & scoring -----------------------------------------------

    async def submit_answer(
        self,
        session_id: str,
        answer: Optional[str] = None,
        auto: bool = False,
    ) -> Optional[Evaluation]:
        """Submit the current question's answer, score it and move on.

        ``answer`` defaults to the staged option ("" when nothing is staged).
        If the question already holds a submitted answer whose scoring failed,
        scoring is retried against that answer. Returns None when another
        submission for the same question is already in flight.
        """
        session = self.store.get(session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "interview is not running")
        idx = session.current_question_index
        key = (session_id, idx)
        if key in self._in_flight:
            self._log(session_id).info(f"Submission for question {idx + 1} already in flight; ignoring")
            return None
        question = session.current_question()
        if question is None:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "no open question")
        if answer is not None and not question.submitted:
            answer = self._check_label(question, answer)

        self._in_flight.add(key)
        try:
            if not question.submitted:
                submitted = answer if answer is not None else self._staged.get(session_id, "")
                time_spent = self._time_spent(session, question)
                self.store.submit_answer(session_id, idx, submitted, time_spent)
                self.store.append_chat(
                    session_id,
                    ChatEntry.create(
                        EntryType.ANSWER,
                        submitted or NO_ANSWER_TEXT,
                        question_index=idx,
                        time_spent=time_spent,
                        auto=auto,
                    ),
                )
                self.telemetry.incr("questions_submitted")
            else:
                self._log(session_id).info(f"Retrying scoring of question {idx + 1}")
            evaluation = await self._score(session_id, idx, question, auto)
            await self._after_scored(session_id, idx)
        finally:
            self._in_flight.discard(key)
        return evaluation

    async def retry_scoring(self, session_id: str) -> Optional[Evaluation]:
        session = self.store.get(session_id)
        question = session.current_question()
        if question is None or not question.submitted or question.scored:
            raise InvalidTransition(session.status, session.status, "no answer is waiting to be scored")
        return await self.submit_answer(session_id)

    async def _score(self, session_id: str, idx: int, question: Question, auto: bool) -> Evaluation:
        key = (session_id, idx)
        try:
            with self.telemetry.timer("scoring_ms"):
                evaluation = await self.evaluator.evaluate(question, question.answer)
        except ScoringFailed as e:
            self.telemetry.incr("scoring_failures")
            failures = self._scoring_failures.get(key, 0) + 1
            self._scoring_failures[key] = failures
            give_up = auto or key in self._expired or failures >= self.config.scoring_failure_limit
            if not give_up:
                self._log(session_id).warning(f"Scoring question {idx + 1} failed ({failures}): {e}")
                raise
            self._log(session_id).warning(f"Scoring question {idx + 1} failed for good, recording 0: {e}")
            evaluation = Evaluation(score=0, feedback=f"Scoring failed ({e}). No points were awarded.")

        if session_id not in self.store:
            raise NotFound(session_id)
        self.store.score_question(session_id, idx, evaluation.score, evaluation.feedback)
        self.store.append_chat(
            session_id,
            ChatEntry.create(EntryType.FEEDBACK, evaluation.feedback, question_index=idx, score=evaluation.score),
        )
        return evaluation

    async def _after_scored(self, session_id: str, idx: int) -> None:
        result = self.machine.advance(session_id, idx)
        if result == AdvanceResult.NOOP:
            return
        self.timers.cancel(session_id)
        self._staged.pop(session_id, None)
        self._forget_question((session_id, idx))
        if result == AdvanceResult.ADVANCED:
            self._enter_question(session_id)
        else:
            await self._complete(session_id)

    async def _complete(self, session_id: str) -> None:
        questions = self.store.get(session_id).questions
        try:
            with self.telemetry.timer("summary_ms"):
                summary = await self.evaluator.summarize(questions)
        except SummaryFailed as e:
            self._log(session_id).warning(f"Summary failed, recording numbers only: {e}")
            summary = fallback_summary(questions)
        if session_id not in self.store:
            return
        self.machine.complete(session_id, summary)
        self.telemetry.incr("sessions_completed")

    def _forget_question(self, key: QuestionKey) -> None:
        self._expired.discard(key)
        self._scoring_failures.pop(key, None)

    # -- pause / resume / delete ----------------------------------------------

    def pause(self, session_id: str) -> Optional[int]:
        """Stop the countdown and remember exactly how much time was left."""
        session = self.store.get(session_id)
        ensure_transition(session.status, SessionStatus.PAUSED)
        if (session_id, session.current_question_index) in self._in_flight:
            raise InvalidTransition(session.status, SessionStatus.PAUSED, "an answer is being scored")
        remaining = self.remaining_time(session_id)
        self.timers.cancel(session_id)
        self.machine.pause(session_id, remaining)
        return remaining

    async def resume(self, session_id: str) -> CandidateSession:
        """Continue a paused session, or rebuild the countdown of one that lost it."""
        session = self.store.get(session_id)
        if session.status == SessionStatus.PAUSED:
            self.machine.resume(session_id)
        elif session.status != SessionStatus.IN_PROGRESS:
            raise InvalidTransition(session.status, SessionStatus.IN_PROGRESS, "nothing to resume")
        timer = self.timers.get(session_id)
        if timer is None or not (timer.running or timer.expired):
            self._enter_question(session_id)
        return self.store.get(session_id)

    def delete(self, session_id: str) -> None:
        self.timers.cancel(session_id)
        self._staged.pop(session_id, None)
        for key in [k for k in self._expired | set(self._scoring_failures) if k[0] == session_id]:
            self._forget_question(key)
        self.machine.remove(session_id)

    def pending_resume(self) -> Optional[Dict[str, Any]]:
        """The current session if it was left mid-interview."""
        session = self.store.current()
        if session is None or session.status not in (SessionStatus.PAUSED, SessionStatus.IN_PROGRESS):
            return None
        total = len(session.questions)
        return {
            "session": session,
            "questions_completed": session.current_question_index,
            "questions_remaining": total - session.current_question_index,
            "last_active_at": session.last_active_at,
        }

    def shutdown(self) -> None:
        self.timers.cancel_all()
