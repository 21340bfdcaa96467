"""
Attempt Repository
Persists submitted attempts and lists them for the results screen
"""
from contextlib import nullcontext
import logging

from sqlalchemy.exc import SQLAlchemyError

from elearning.extensions import db
from elearning.models import QuizAttempt
from elearning.engine.attempt import SUBMITTED
from elearning.engine.errors import PersistenceError

logger = logging.getLogger(__name__)


class AttemptRepository:
    """
    SQLAlchemy-backed attempt storage

    When built with an app, every call runs in its own app context so it can
    be used from background tasks.
    """

    def __init__(self, app=None):
        self.app = app

    def _context(self):
        return self.app.app_context() if self.app is not None else nullcontext()

    def save_attempt(self, attempt):
        """Create or replace an attempt by id"""
        with self._context():
            try:
                row = db.session.get(QuizAttempt, attempt.id)
                if row is None:
                    row = QuizAttempt(id=attempt.id)
                    db.session.add(row)
                else:
                    # Drop old per-question rows before re-inserting them
                    row.question_answers.clear()
                    db.session.flush()

                row.update_from_domain(attempt)
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceError(f'Could not save attempt {attempt.id}: {exc}') from exc

        logger.info('Saved attempt %s (quiz=%s, score=%s)',
                    attempt.id, attempt.assessment_id, attempt.score)
        return attempt

    def list_attempts_by_assessment(self, assessment_id, examinee_id=None):
        """Attempts for a quiz, newest submission first"""
        with self._context():
            try:
                query = QuizAttempt.query.filter_by(quiz_id=int(assessment_id))
                if examinee_id is not None:
                    query = query.filter_by(student=examinee_id)
                rows = query.order_by(QuizAttempt.submitted_at.desc()).all()
                return [row.to_domain() for row in rows]
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceError(f'Could not load attempts: {exc}') from exc

    def get_attempt(self, attempt_id):
        with self._context():
            try:
                row = db.session.get(QuizAttempt, attempt_id)
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise PersistenceError(f'Could not load attempt {attempt_id}: {exc}') from exc
            return row.to_domain() if row else None

    def was_persisted(self, attempt_id):
        """True once the submitted attempt is stored"""
        attempt = self.get_attempt(attempt_id)
        return attempt is not None and attempt.state == SUBMITTED
