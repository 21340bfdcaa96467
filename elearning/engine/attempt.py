"""
Attempt State Machine
Drives one examinee's pass at an assessment: not-started -> in-progress -> submitted

The machine owns the attempt's AnswerStore and AttemptTimer. Manual submission
and timer expiry are independent event sources; the guard in submit() makes
sure only the first one scores and persists the attempt.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple
import logging
import threading
import uuid

from elearning.engine import scoring
from elearning.engine.answer_store import AnswerStore
from elearning.engine.errors import (
    AssessmentClosed,
    AssessmentNotYetAvailable,
    AttemptLimitExceeded,
    InvalidState,
    PersistenceError,
)
from elearning.engine.timer import EXPIRE, AttemptTimer, start_daemon_thread

logger = logging.getLogger(__name__)

# Lifecycle states
NOT_STARTED = 'not-started'
IN_PROGRESS = 'in-progress'
SUBMITTED = 'submitted'

# Submission triggers
MANUAL = 'manual'
EXPIRY = 'expiry'
TRIGGERS = (MANUAL, EXPIRY)

# Persistence status of a submitted attempt
PENDING = 'pending'
SAVED = 'saved'
FAILED = 'failed'


def now_utc():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Attempt:
    """Snapshot of an attempt; a submitted snapshot is final"""
    id: str
    assessment_id: str
    examinee_id: str
    state: str
    answers: Dict[str, str] = field(default_factory=dict)
    elapsed_seconds: int = 0
    score: Optional[float] = None
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    trigger: Optional[str] = None
    results: Tuple = ()

    @property
    def is_submitted(self):
        return self.state == SUBMITTED

    def to_dict(self):
        return {
            'id': self.id,
            'quiz_id': self.assessment_id,
            'student': self.examinee_id,
            'state': self.state,
            'answers': dict(self.answers),
            'elapsed_seconds': self.elapsed_seconds,
            'score': self.score,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'trigger': self.trigger,
            'questions': [r.to_dict() for r in self.results],
        }


class AttemptStateMachine:
    """
    Lifecycle of a single attempt

    Args:
        repository: Attempt repository (list_attempts_by_assessment, save_attempt)
        timer_factory: Callable(duration_minutes) -> AttemptTimer
        spawn: Launcher for fire-and-forget persistence; None saves inline
        clock: Callable returning the current timezone-aware UTC datetime
    """

    def __init__(self, repository, timer_factory=AttemptTimer, spawn=start_daemon_thread,
                 clock=now_utc):
        self._repository = repository
        self._timer_factory = timer_factory
        self._spawn = spawn
        self._clock = clock
        self._lock = threading.Lock()
        self._listeners = {'submitted': [], 'saved': [], 'save_failed': []}

        self.state = NOT_STARTED
        self.assessment = None
        self.examinee_id = None
        self.attempt_id = None
        self.started_at = None
        self.current_index = 0
        self.timer = None
        self.answers = None
        self.result = None
        self.persistence_status = None
        self.persistence_error = None
        self._final = None

    # ================= EVENTS =================

    def on(self, event, callback):
        """Subscribe to 'submitted', 'saved' or 'save_failed'"""
        self._listeners[event].append(callback)
        return callback

    def _emit(self, event, *args):
        for callback in list(self._listeners[event]):
            callback(*args)

    # ================= LIFECYCLE =================

    def start(self, assessment, examinee_id, attempt_id=None, unsaved_attempt_ids=()):
        """
        Open a new attempt for examinee_id

        unsaved_attempt_ids names submitted attempts by this examinee that the
        repository may not hold yet; they count towards max_attempts.

        Raises:
            InvalidState: the machine already holds an attempt
            AssessmentNotYetAvailable / AssessmentClosed: outside the availability window
            AttemptLimitExceeded: examinee used up max_attempts
            InvalidDuration: quiz duration is not a positive number of minutes
        """
        with self._lock:
            if self.state != NOT_STARTED:
                raise InvalidState(f'Cannot start an attempt that is {self.state}')

            now = self._clock()
            if not assessment.has_opened(now):
                raise AssessmentNotYetAvailable(
                    f'Quiz opens at {assessment.available_from.isoformat()}'
                )
            if assessment.has_closed(now):
                raise AssessmentClosed(
                    f'Quiz closed at {assessment.available_until.isoformat()}'
                )
            self._check_attempt_limit(assessment, examinee_id, unsaved_attempt_ids)

            timer = self._timer_factory(assessment.duration_minutes)
            timer.on(EXPIRE, self._on_expire)

            self.assessment = assessment
            self.examinee_id = examinee_id
            self.attempt_id = attempt_id or uuid.uuid4().hex
            self.started_at = now
            self.current_index = 0
            self.answers = AnswerStore()
            self.timer = timer
            self.state = IN_PROGRESS

        timer.start()
        logger.info('Attempt %s started: quiz=%s student=%s duration=%smin',
                    self.attempt_id, assessment.id, examinee_id, assessment.duration_minutes)
        return self.attempt

    def _check_attempt_limit(self, assessment, examinee_id, unsaved_attempt_ids):
        if assessment.max_attempts is None:
            return
        prior = {
            a.id for a in self._repository.list_attempts_by_assessment(
                assessment.id, examinee_id=examinee_id
            )
            if a.examinee_id == examinee_id and a.state == SUBMITTED
        }
        prior.update(unsaved_attempt_ids)
        if len(prior) >= assessment.max_attempts:
            raise AttemptLimitExceeded(
                f'Maximum attempts ({assessment.max_attempts}) reached for this quiz'
            )

    def answer(self, question_id, value):
        with self._lock:
            if self.state != IN_PROGRESS:
                raise InvalidState(f'Cannot answer while attempt is {self.state}')
            self.answers.set_answer(question_id, value)

    def navigate(self, index):
        """Move the current question pointer; out-of-range indexes are clamped"""
        with self._lock:
            if self.state == NOT_STARTED:
                raise InvalidState('Cannot navigate before the attempt starts')
            last = max(len(self.assessment.questions) - 1, 0)
            self.current_index = min(max(int(index), 0), last)
            return self.current_index

    def submit(self, trigger=MANUAL):
        """
        Finalize the attempt exactly once

        The first call scores and schedules persistence; later calls (a manual
        click racing the expiry event) return the already finalized Attempt.
        """
        if trigger not in TRIGGERS:
            raise ValueError(f'Unknown submit trigger: {trigger!r}')

        with self._lock:
            if self._final is not None:
                return self._final
            if self.state != IN_PROGRESS:
                raise InvalidState(f'Cannot submit while attempt is {self.state}')

            self.timer.stop()
            total = self.timer.duration_seconds
            if trigger == EXPIRY:
                elapsed = total
            else:
                elapsed = total - self.timer.remaining_seconds
            elapsed = min(max(elapsed, 0), total)

            answers = self.answers.snapshot()
            result = scoring.score(self.assessment.questions, answers)

            final = Attempt(
                id=self.attempt_id,
                assessment_id=self.assessment.id,
                examinee_id=self.examinee_id,
                state=SUBMITTED,
                answers=answers,
                elapsed_seconds=elapsed,
                score=result.percentage,
                started_at=self.started_at,
                submitted_at=self._clock(),
                trigger=trigger,
                results=result.per_question,
            )
            self.result = result
            self.answers = None
            self.state = SUBMITTED
            self.persistence_status = PENDING
            self._final = final

        logger.info('Attempt %s submitted (%s): score=%.2f%% elapsed=%ss',
                    final.id, trigger, final.score, final.elapsed_seconds)
        self._emit('submitted', final)

        if self._spawn is None:
            self._persist(final)
        else:
            self._spawn(self._persist, final)
        return final

    def _on_expire(self):
        self.submit(EXPIRY)

    def _persist(self, attempt):
        try:
            self._repository.save_attempt(attempt)
        except PersistenceError as exc:
            self.persistence_status = FAILED
            self.persistence_error = exc
            logger.warning('Attempt %s was not saved: %s', attempt.id, exc, exc_info=True)
            self._emit('save_failed', attempt, exc)
            return

        self.persistence_status = SAVED
        self._emit('saved', attempt)

    # ================= VIEW =================

    @property
    def attempt(self):
        """Current snapshot, None before start"""
        if self._final is not None:
            return self._final
        if self.state == NOT_STARTED:
            return None
        return Attempt(
            id=self.attempt_id,
            assessment_id=self.assessment.id,
            examinee_id=self.examinee_id,
            state=self.state,
            answers=self.answers.snapshot(),
            elapsed_seconds=self.timer.duration_seconds - self.timer.remaining_seconds,
            started_at=self.started_at,
        )

    @property
    def remaining_seconds(self):
        if self.timer is None:
            return None
        return self.timer.remaining_seconds

    def is_answered(self, question_id):
        if self._final is not None:
            return bool(self._final.answers.get(question_id, '').strip())
        if self.answers is None:
            return False
        return self.answers.is_answered(question_id)

    def question_status(self):
        """Answered/unanswered flag per question in order"""
        if self.assessment is None:
            return []
        return [
            {'index': i, 'question_id': q.id, 'answered': self.is_answered(q.id)}
            for i, q in enumerate(self.assessment.questions)
        ]

    @property
    def progress(self):
        if self.answers is not None:
            return self.answers.progress(self.assessment.question_ids)
        status = self.question_status()
        if not status:
            return 0.0
        answered = sum(1 for s in status if s['answered'])
        return round(answered / len(status) * 100, 2)
