from __future__ import annotations


class InterviewError(Exception):
    pass


class ValidationError(InterviewError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ExtractionFailure(InterviewError):
    pass


class UnsupportedFormat(ExtractionFailure):
    def __init__(self, extension: str):
        super().__init__(f"Unsupported file type '{extension or '?'}'. Please upload PDF or DOCX.")
        self.extension = extension


class RemoteServiceError(InterviewError):
    pass


class GenerationFailed(RemoteServiceError):
    def __init__(self, reason: str):
        super().__init__(f"Failed to generate questions: {reason}")
        self.reason = reason


class ScoringFailed(RemoteServiceError):
    pass


class SummaryFailed(RemoteServiceError):
    pass


class NotFound(InterviewError):
    def __init__(self, session_id: str):
        super().__init__(f"session {session_id} not found")
        self.session_id = session_id


class InvalidTransition(InterviewError):
    def __init__(self, current: str, target: str, detail: str = ""):
        msg = f"cannot move from {current} to {target}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.current = current
        self.target = target
