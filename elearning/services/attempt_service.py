"""
Attempt Service
Creates live attempt state machines, keeps them while the examinee works,
and relays timer and submission events to Socket.IO rooms
"""
from functools import partial
import logging
import threading
import uuid

from flask import current_app

from elearning.extensions import socketio, active_attempts
from elearning.engine import scoring
from elearning.engine.attempt import FAILED, IN_PROGRESS, SAVED, SUBMITTED, AttemptStateMachine
from elearning.engine.errors import InvalidState, NotFound
from elearning.engine.timer import EXPIRE, TICK, AttemptTimer
from elearning.services.assessment_source import AssessmentSource
from elearning.services.attempt_repository import AttemptRepository
from elearning.utils.helpers import now_utc, to_local_time

logger = logging.getLogger(__name__)

# Serializes find-or-start so one examinee cannot open two attempts at once
_start_lock = threading.Lock()


def attempt_room(attempt_id):
    return f'attempt_{attempt_id}'


def _run_in_context(app, target, *args):
    with app.app_context():
        target(*args)


def _background_spawner(app):
    """Launcher for background tasks, or None when they are disabled"""
    if not app.config.get('ATTEMPT_BACKGROUND_TASKS', True):
        return None

    def spawn(target, *args):
        return socketio.start_background_task(_run_in_context, app, target, *args)
    return spawn


class AttemptService:
    """Attempt lifecycle for the HTTP and Socket.IO layers"""

    @staticmethod
    def find_active(quiz_id, examinee_id):
        """In-progress attempt of this examinee on this quiz, if any"""
        for machine in list(active_attempts.values()):
            if (machine.state == IN_PROGRESS
                    and machine.assessment.id == str(quiz_id)
                    and machine.examinee_id == examinee_id):
                return machine
        return None

    @staticmethod
    def unsaved_attempt_ids(quiz_id, examinee_id):
        """Submitted attempts still in memory whose save is pending or failed"""
        return [
            machine.attempt_id for machine in list(active_attempts.values())
            if machine.state == SUBMITTED
            and machine.persistence_status != SAVED
            and machine.assessment.id == str(quiz_id)
            and machine.examinee_id == examinee_id
        ]

    @staticmethod
    def prune_registry():
        """Forget attempts whose save failed longer ago than the retention period"""
        retention = current_app.config.get('FAILED_ATTEMPT_RETENTION_SECONDS', 3600)
        now = now_utc()
        for attempt_id, machine in list(active_attempts.items()):
            if machine.persistence_status != FAILED:
                continue
            submitted_at = machine.attempt.submitted_at
            if (now - submitted_at).total_seconds() >= retention:
                active_attempts.pop(attempt_id, None)
                logger.warning('Dropped unsaved attempt %s (quiz=%s, student=%s, score=%s)',
                               attempt_id, machine.assessment.id, machine.examinee_id,
                               machine.attempt.score)

    @staticmethod
    def start_attempt(quiz_id, examinee_id):
        """
        Start (or resume) an attempt

        Leaving the quiz page does not stop the clock: starting again while an
        attempt is in progress hands back the same machine.
        """
        with _start_lock:
            AttemptService.prune_registry()
            existing = AttemptService.find_active(quiz_id, examinee_id)
            if existing is not None:
                logger.info('Resuming attempt %s for %s', existing.attempt_id, examinee_id)
                return existing
            return AttemptService._open_attempt(quiz_id, examinee_id)

    @staticmethod
    def _open_attempt(quiz_id, examinee_id):
        assessment = AssessmentSource.get_assessment_by_id(quiz_id)
        app = current_app._get_current_object()
        spawn = _background_spawner(app)
        attempt_id = uuid.uuid4().hex
        room = attempt_room(attempt_id)

        def timer_factory(duration_minutes):
            timer = AttemptTimer(duration_minutes, spawn=spawn, sleep=socketio.sleep)
            timer.on(TICK, partial(_emit_tick, attempt_id))
            timer.on(EXPIRE, partial(_emit_expired, attempt_id))
            return timer

        machine = AttemptStateMachine(
            AttemptRepository(app),
            timer_factory=timer_factory,
            spawn=spawn,
        )
        machine.on('submitted', _emit_submitted)
        machine.on('saved', _forget_saved)
        machine.on('save_failed', _emit_save_failed)

        machine.start(
            assessment, examinee_id, attempt_id=attempt_id,
            unsaved_attempt_ids=AttemptService.unsaved_attempt_ids(assessment.id, examinee_id),
        )
        active_attempts[attempt_id] = machine
        logger.debug('Live attempts: %s (room %s)', len(active_attempts), room)
        return machine

    @staticmethod
    def get_machine(attempt_id, examinee_id):
        """
        Live machine owned by examinee_id

        Raises:
            NotFound: no live attempt with that id for this examinee
        """
        machine = active_attempts.get(attempt_id)
        if machine is None or machine.examinee_id != examinee_id:
            raise NotFound(f'Attempt {attempt_id} not found')
        return machine

    @staticmethod
    def submit_attempt(attempt_id, examinee_id, trigger):
        """
        Submit a live attempt; an attempt that was already submitted and
        stored returns its stored result
        """
        machine = active_attempts.get(attempt_id)
        if machine is None or machine.examinee_id != examinee_id:
            return AttemptService.get_result(attempt_id, examinee_id)

        attempt = machine.submit(trigger)
        return AttemptService.build_result(
            attempt, machine.assessment, machine.persistence_status
        )

    @staticmethod
    def get_result(attempt_id, examinee_id):
        """
        Result of a submitted attempt from the live session or the repository

        Returns:
            dict: result payload (see build_result)
        """
        machine = active_attempts.get(attempt_id)
        if machine is not None and machine.examinee_id == examinee_id:
            if machine.result is None:
                raise InvalidState('Attempt is still in progress')
            return AttemptService.build_result(
                machine.attempt, machine.assessment, machine.persistence_status
            )

        repository = AttemptRepository()
        attempt = repository.get_attempt(attempt_id)
        if attempt is None or attempt.examinee_id != examinee_id:
            raise NotFound(f'Attempt {attempt_id} not found')

        assessment = AssessmentSource.get_assessment_by_id(
            attempt.assessment_id, published_only=False
        )
        return AttemptService.build_result(attempt, assessment, 'saved')

    @staticmethod
    def list_attempts(quiz_id, examinee_id):
        """Examinee's submitted attempts on a quiz, newest first"""
        assessment = AssessmentSource.get_assessment_by_id(quiz_id, published_only=False)
        passing_score = AttemptService.passing_score(assessment)
        attempts = AttemptRepository().list_attempts_by_assessment(
            assessment.id, examinee_id=examinee_id
        )

        history = []
        for attempt in attempts:
            submitted_local = to_local_time(attempt.submitted_at)
            history.append({
                'id': attempt.id,
                'score': attempt.score,
                'passed': scoring.passed(attempt.score or 0, passing_score),
                'elapsed_seconds': attempt.elapsed_seconds,
                'trigger': attempt.trigger,
                'submitted_at': attempt.submitted_at.isoformat() if attempt.submitted_at else None,
                'submitted_at_local': submitted_local.isoformat() if submitted_local else None,
            })

        return {
            'quiz_id': assessment.id,
            'quiz_title': assessment.title,
            'passing_score': passing_score,
            'max_attempts': assessment.max_attempts,
            'attempts': history,
        }

    @staticmethod
    def list_quizzes(examinee_id):
        """
        Published quizzes for the quiz home screen

        Status is one of scheduled, available, completed (attempts used up)
        or closed. attempts_remaining is None when the quiz has no limit.
        """
        repository = AttemptRepository()
        now = now_utc()

        quizzes = []
        for assessment in AssessmentSource.list_published():
            used = {
                a.id for a in repository.list_attempts_by_assessment(
                    assessment.id, examinee_id=examinee_id
                )
                if a.state == SUBMITTED
            }
            used.update(AttemptService.unsaved_attempt_ids(assessment.id, examinee_id))

            remaining = None
            if assessment.max_attempts is not None:
                remaining = max(assessment.max_attempts - len(used), 0)

            if not assessment.has_opened(now):
                status = 'scheduled'
            elif assessment.has_closed(now):
                status = 'closed'
            elif remaining == 0:
                status = 'completed'
            else:
                status = 'available'

            active = AttemptService.find_active(assessment.id, examinee_id)
            quizzes.append({
                'id': assessment.id,
                'title': assessment.title,
                'course_id': assessment.course_id,
                'duration': assessment.duration_minutes,
                'total_questions': len(assessment.questions),
                'max_attempts': assessment.max_attempts,
                'available_from': assessment.available_from.isoformat()
                if assessment.available_from else None,
                'available_until': assessment.available_until.isoformat()
                if assessment.available_until else None,
                'status': status,
                'attempts_used': len(used),
                'attempts_remaining': remaining,
                'can_start': status == 'available' or active is not None,
                'active_attempt_id': active.attempt_id if active else None,
            })
        return quizzes

    # ================= PAYLOADS =================

    @staticmethod
    def passing_score(assessment):
        if assessment.passing_score is not None:
            return assessment.passing_score
        return current_app.config['DEFAULT_PASSING_SCORE']

    @staticmethod
    def build_status(machine):
        """Timer, position and per-question answered flags for the quiz screen"""
        assessment = machine.assessment
        current = None
        if assessment.questions:
            current = assessment.question_at(machine.current_index).to_dict(include_answer=False)

        return {
            'success': True,
            'attempt_id': machine.attempt_id,
            'quiz_id': assessment.id,
            'quiz_title': assessment.title,
            'state': machine.state,
            'current_index': machine.current_index,
            'total_questions': len(assessment.questions),
            'remaining_seconds': machine.remaining_seconds,
            'progress': machine.progress,
            'questions': machine.question_status(),
            'current_question': current,
        }

    @staticmethod
    def build_result(attempt, assessment, persistence_status):
        passing_score = AttemptService.passing_score(assessment)

        # Review screen shows each prompt next to its answer key
        attempt_data = attempt.to_dict()
        questions = {q.id: q for q in assessment.questions}
        for entry in attempt_data['questions']:
            question = questions.get(entry['question_id'])
            entry['question'] = question.prompt if question else None
            entry['correct_answer'] = question.answer_key if question else None

        payload = {
            'success': True,
            'attempt': attempt_data,
            'score': attempt.score,
            'passing_score': passing_score,
            'passed': scoring.passed(attempt.score or 0, passing_score),
            'persistence_status': persistence_status,
            'persisted': persistence_status == 'saved',
        }
        if persistence_status == 'failed':
            payload['warning'] = 'Your result is shown below but may not have been saved.'
        return payload


# ================= EVENT RELAYS =================

def _emit_tick(attempt_id, remaining_seconds):
    socketio.emit('timer_tick', {
        'attempt_id': attempt_id,
        'remaining_seconds': remaining_seconds,
    }, room=attempt_room(attempt_id))


def _emit_expired(attempt_id):
    socketio.emit('attempt_expired', {'attempt_id': attempt_id}, room=attempt_room(attempt_id))


def _emit_submitted(attempt):
    socketio.emit('attempt_submitted', {
        'attempt_id': attempt.id,
        'score': attempt.score,
        'trigger': attempt.trigger,
    }, room=attempt_room(attempt.id))


def _emit_save_failed(attempt, error):
    socketio.emit('attempt_save_failed', {
        'attempt_id': attempt.id,
        'message': 'Your result may not have been saved.',
    }, room=attempt_room(attempt.id))


def _forget_saved(attempt):
    # The stored attempt is the durable record from here on
    active_attempts.pop(attempt.id, None)
