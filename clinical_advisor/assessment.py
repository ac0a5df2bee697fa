from loguru import logger

from .config import KnowledgeBase
from .errors import AssessmentRequestError, MalformedResponseError, SessionBusyError
from .gemini import ASSESSMENT_SCHEMA
from .guardrails import check_submission
from .history import record_assessment
from .parsing import parse_assessment
from .prompts import build_narrative_prompt, build_structured_prompt
from .schemas import UnparsedAssessment
from .sessions import FormSession

GENERIC_FAILURE_NOTICE = (
    "Unable to process clinical analysis. "
    "Please ensure your API key is configured correctly."
)
NARRATIVE_EMPTY_MESSAGE = "No analysis was generated. Please try again."
NARRATIVE_ERROR_MESSAGE = (
    "## Error\n"
    "The clinical report could not be generated. "
    "Please check your connection and API configuration, then try again."
)


class AssessmentService:
    """Runs one analysis for a form session against the model."""

    def __init__(self, knowledge: KnowledgeBase, client, engine):
        self.knowledge = knowledge
        self.client = client
        self.engine = engine

    async def submit(self, session: FormSession) -> None:
        check_submission(session.mode, session.profile, session.symptoms)
        if session.busy:
            raise SessionBusyError("An analysis is already running for this session.")

        logger.info("Starting {} analysis for session {}", session.mode, session.session_id)
        session.busy = True
        # Edits made while the request is in flight must not leak into its history row.
        profile = session.profile.model_copy()
        symptoms = session.symptoms
        try:
            if session.mode == "narrative":
                await self._run_narrative(session, profile, symptoms)
            else:
                await self._run_structured(session, profile, symptoms)
        finally:
            session.busy = False

    async def _run_structured(self, session: FormSession, profile, symptoms: str) -> None:
        session.result = None
        prompt = build_structured_prompt(self.knowledge, profile, symptoms)
        try:
            text = await self.client.generate(prompt, response_schema=ASSESSMENT_SCHEMA)
            outcome = parse_assessment(text)
            if isinstance(outcome, UnparsedAssessment):
                logger.warning("Unparsable model output ({}): {}", outcome.reason, outcome.raw_text[:300])
                raise MalformedResponseError(outcome.reason, raw_text=outcome.raw_text)
        except AssessmentRequestError as e:
            logger.error("Structured analysis failed for session {}: {}", session.session_id, e)
            self._record(session, profile, symptoms, "failed", None)
            raise

        session.result = outcome.result
        self._record(session, profile, symptoms, "ok", outcome.result.model_dump(by_alias=True))

    async def _run_narrative(self, session: FormSession, profile, symptoms: str) -> None:
        prompt = build_narrative_prompt(self.knowledge, profile, symptoms)
        try:
            text = await self.client.generate(prompt)
        except Exception:
            # The report itself carries the failure; nothing is raised to the caller.
            logger.exception("Narrative report failed for session {}", session.session_id)
            session.report = NARRATIVE_ERROR_MESSAGE
            self._record(session, profile, symptoms, "failed", None)
            return

        session.report = text or NARRATIVE_EMPTY_MESSAGE
        self._record(session, profile, symptoms, "ok", {"markdown": session.report})

    def _record(self, session: FormSession, profile, symptoms: str, outcome: str, result) -> None:
        record_assessment(
            self.engine,
            session_id=session.session_id,
            mode=session.mode,
            symptoms=symptoms,
            profile=profile.model_dump(),
            outcome=outcome,
            result=result,
        )
