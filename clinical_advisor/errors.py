class AdvisorError(Exception):
    """Base class for every error raised by the advisor services."""


# -----------------------------
# INPUT / SESSION ERRORS
# -----------------------------
class IncompleteSubmissionError(AdvisorError):
    """Not enough input to start an analysis. Raised before any network call."""


class UnknownFieldError(AdvisorError):
    def __init__(self, field: str, mode: str):
        super().__init__(f"Unknown profile field '{field}' for {mode} mode.")
        self.field = field
        self.mode = mode


class SessionNotFoundError(AdvisorError):
    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found. Start a new session.")
        self.session_id = session_id


class SessionBusyError(AdvisorError):
    """An analysis is already running for this session."""


# -----------------------------
# REQUEST ERRORS
# -----------------------------
class AssessmentRequestError(AdvisorError):
    """The model call failed or its answer could not be used."""


class MissingCredentialsError(AssessmentRequestError):
    pass


class ModelRequestError(AssessmentRequestError):
    pass


class MalformedResponseError(AssessmentRequestError):
    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text
