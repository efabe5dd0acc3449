# Overview: Unit-of-work and stage bookkeeping at the persistence boundary.

from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db


class PersistenceFailure(Exception):
    """
    A write was rejected by the store.

    stage names the step of a multi-stage save ("bill", "items", ...);
    index points at the offending record within that stage when known.
    """
    def __init__(self, message: str, *, stage: str, index: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.stage = stage
        self.index = index
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"stage": self.stage, "index": self.index, **self.details}


class StageTracker:
    """Remembers which stage (and record) a unit of work is currently writing."""

    def __init__(self) -> None:
        self.stage: str | None = None
        self.index: int | None = None
        self.completed: list[str] = []

    @contextmanager
    def stage_of(self, name: str):
        self.stage = name
        self.index = None
        yield self
        self.completed.append(name)
        self.stage = None

    def at(self, index: int | None) -> None:
        self.index = index


@contextmanager
def unit_of_work(operation: str):
    """
    Run a sequence of writes as one atomic transaction.

    Writes inside the block should flush, not commit. On success the session
    is committed once; on any database error everything is rolled back and a
    PersistenceFailure naming the failing stage is raised.
    """
    tracker = StageTracker()
    try:
        yield tracker
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        stage = tracker.stage or "commit"
        current_app.logger.error(
            "%s failed at stage=%s index=%s completed=%s: %s",
            operation, stage, tracker.index, tracker.completed, exc.__class__.__name__,
        )
        raise PersistenceFailure(
            f"Could not save {operation} ({stage})",
            stage=stage,
            index=tracker.index,
        ) from exc
    except Exception:
        db.session.rollback()
        raise


def commit_or_fail(operation: str, stage: str) -> None:
    """Commit a single-stage write, translating store errors into PersistenceFailure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("%s failed at stage=%s: %s", operation, stage, exc.__class__.__name__)
        raise PersistenceFailure(f"Could not save {operation}", stage=stage) from exc
