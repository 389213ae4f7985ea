import argparse
import asyncio
import os
import sys
from typing import Optional

from agents.orchestrator_agent import InterviewOrchestrator
from models import CandidateSession, EntryType, SessionStatus
from parsers import SUPPORTED_FORMATS
from tools.export import save_session_json
from tools.llm_client import LLMClient
from utils.config import load_config
from utils.errors import GenerationFailed, InterviewError
from utils.logging import setup_logging, get_logger


logger = get_logger(__name__)

POLL_SECONDS = 0.25


def find_resume(path: Optional[str]) -> Optional[str]:
    if path and os.path.isfile(path):
        return path
    for ext in SUPPORTED_FORMATS:
        candidate = os.path.join("data", f"sample_resume.{ext}")
        if os.path.isfile(candidate):
            return candidate
    return None


def print_new_entries(session: CandidateSession, shown: int) -> int:
    for entry in session.chat_history[shown:]:
        if entry.type == EntryType.QUESTION:
            idx = entry.metadata["question_index"]
            print(
                f"\nQ{idx + 1} [{entry.metadata['difficulty'].upper()} | {entry.metadata['time_limit']}s] "
                f"{entry.content}"
            )
            for label, text in entry.metadata["options"].items():
                print(f"   {label}: {text}")
        elif entry.type == EntryType.ANSWER:
            print(f"Your answer: {entry.content} (time taken: {entry.metadata['time_spent']}s)")
        elif entry.type == EntryType.FEEDBACK:
            print(f"Feedback: {entry.content} (score: {entry.metadata['score']}/10)")
        elif entry.type == EntryType.COMPLETION:
            print(
                f"\nInterview complete! Final score: {entry.metadata['score']}/{entry.metadata['max_score']} "
                f"({entry.metadata['percentage']}%)\n{entry.content}"
            )
        elif entry.type != EntryType.USER:
            print(f"Bot: {entry.content}")
    return len(session.chat_history)


async def read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def collect_profile(orch: InterviewOrchestrator, session: CandidateSession, shown: int) -> int:
    sid = session.session_id
    while session.status == SessionStatus.COLLECTING_INFO:
        if session.collecting_field is None:
            # Profile complete but no questions yet.
            answer = (await read_line("Press Enter to generate questions, or type 'quit': ")).strip().lower()
            if answer in {"quit", "/quit"}:
                return shown
            try:
                await orch.start_interview(sid)
            except GenerationFailed as e:
                print(f"! {e}")
            shown = print_new_entries(session, shown)
            continue
        value = await read_line("> ")
        try:
            await orch.submit_field(sid, value)
        except InterviewError as e:
            print(f"! {e}")
        shown = print_new_entries(session, shown)
    return shown


async def run_questions(orch: InterviewOrchestrator, session: CandidateSession, shown: int) -> int:
    sid = session.session_id
    pending: Optional[asyncio.Task] = None
    while session.status == SessionStatus.IN_PROGRESS:
        idx = session.current_question_index
        if pending is None:
            pending = asyncio.create_task(read_line("Your answer (A-D, or 'pause'): "))
        while not pending.done():
            await asyncio.sleep(POLL_SECONDS)
            if session.status != SessionStatus.IN_PROGRESS or session.current_question_index != idx:
                break
        if not pending.done():
            # Countdown ran out and the question was auto-submitted.
            shown = print_new_entries(session, shown)
            print("Time expired. Type your answer for the next question.")
            continue
        line = pending.result().strip()
        pending = None
        if line.lower() == "pause":
            remaining = orch.pause(sid)
            print(f"Paused with {remaining}s left. Press Enter to resume.")
            await read_line("")
            await orch.resume(sid)
            continue
        try:
            orch.stage_answer(sid, line)
            await orch.submit_answer(sid)
        except InterviewError as e:
            print(f"! {e}")
        shown = print_new_entries(session, shown)
    if pending is not None and not pending.done():
        print("Press Enter to finish.")
        await pending
    return print_new_entries(session, shown)


async def run_cli(resume_path: Optional[str]) -> None:
    cfg = load_config()
    setup_logging(cfg.log_level)

    path = find_resume(resume_path)
    if path is None:
        print("Please provide a PDF or DOCX resume.")
        return

    llm = LLMClient(cfg)
    if cfg.question_source != "sample" and not llm.ready:
        print("! No LLM provider is configured. Set OPENAI_API_KEY, or QUESTION_SOURCE=sample for the built-in questions.")
        return

    orch = InterviewOrchestrator(config=cfg, llm=llm)
    try:
        session = await orch.upload_resume(path, os.path.basename(path), size=os.path.getsize(path))
    except InterviewError as e:
        print(f"! {e}")
        return

    shown = print_new_entries(session, 0)
    try:
        shown = await collect_profile(orch, session, shown)
        shown = await run_questions(orch, session, shown)
    finally:
        orch.shutdown()

    if session.status == SessionStatus.COMPLETED:
        try:
            save_session_json(session, "session_transcript.json")
            print("Saved transcript to session_transcript.json")
        except OSError as e:
            logger.warning(f"Could not save transcript: {e}")

    summary = orch.telemetry.summary()
    if summary["timings"]:
        print("\nTiming (aggregate):")
        for name, t in summary["timings"].items():
            print(f"- {name}: {t['total_ms']:.0f} ms over {t['count']:.0f} ops (~{t['avg_ms']:.0f} ms/op)")


def main():
    parser = argparse.ArgumentParser(description="Timed multiple choice technical interview")
    parser.add_argument("resume", nargs="?", help="resume file (.pdf or .docx)")
    args = parser.parse_args()
    try:
        if sys.platform.startswith("win"):
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]
        asyncio.run(run_cli(args.resume))
    except KeyboardInterrupt:
        print("\nSession ended.")


if __name__ == "__main__":
    main()
