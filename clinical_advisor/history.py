from typing import List, Optional

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine, delete, select

from .schemas import AssessmentRecord

# -----------------------------
# DATABASE SETUP
# -----------------------------
def make_engine(database_url: str):
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # A single shared connection, or every checkout sees an empty db.
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)
    return create_engine(database_url, echo=False)


# -----------------------------
# HISTORY
# -----------------------------
def record_assessment(
    engine,
    session_id: str,
    mode: str,
    symptoms: str,
    profile: dict,
    outcome: str,
    result: Optional[dict] = None,
) -> AssessmentRecord:
    with Session(engine) as session:
        record = AssessmentRecord(
            session_id=session_id,
            mode=mode,
            symptoms=symptoms,
            profile=profile,
            outcome=outcome,
            result=result,
        )
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def list_history(engine, session_id: str, limit: int = 10) -> List[AssessmentRecord]:
    with Session(engine) as session:
        statement = (
            select(AssessmentRecord)
            .where(AssessmentRecord.session_id == session_id)
            .order_by(AssessmentRecord.timestamp.desc(), AssessmentRecord.id.desc())
            .limit(limit)
        )
        return list(session.exec(statement).all())


def clear_history(engine, session_id: str) -> None:
    with Session(engine) as session:
        session.exec(delete(AssessmentRecord).where(AssessmentRecord.session_id == session_id))
        session.commit()
