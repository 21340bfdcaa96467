"""
Student Routes
Quiz home and timed quiz attempts: start, answer, navigate, submit, results and history
All endpoints answer JSON for the quiz screen
"""
import logging

from flask import Blueprint, request, jsonify

from elearning.engine.attempt import MANUAL
from elearning.engine.errors import (
    InvalidDuration,
    InvalidState,
    NotFound,
    PersistenceError,
    PolicyViolation,
)
from elearning.services import AttemptService
from elearning.utils import require_student, get_examinee_id

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__)


def _error(exc, status):
    return jsonify({
        'success': False,
        'error': exc.__class__.__name__,
        'message': exc.message,
    }), status


@student_bp.errorhandler(PolicyViolation)
def handle_policy_violation(exc):
    logger.info('Attempt refused: %s', exc.message)
    return _error(exc, 403)


@student_bp.errorhandler(InvalidState)
def handle_invalid_state(exc):
    logger.warning('Invalid attempt operation: %s', exc.message)
    return _error(exc, 409)


@student_bp.errorhandler(NotFound)
def handle_not_found(exc):
    return _error(exc, 404)


@student_bp.errorhandler(InvalidDuration)
def handle_invalid_duration(exc):
    logger.error('Quiz cannot be started: %s', exc.message)
    return _error(exc, 422)


@student_bp.errorhandler(PersistenceError)
def handle_persistence_error(exc):
    logger.error('Database unavailable: %s', exc.message)
    return _error(exc, 503)


def _json_body():
    return request.get_json(silent=True) or request.form or {}


@student_bp.route('/quiz/<int:quiz_id>/start', methods=['POST'])
@require_student
def start_quiz(quiz_id):
    """Start the countdown for this quiz (or resume the running attempt)"""
    examinee_id = get_examinee_id()
    machine = AttemptService.start_attempt(quiz_id, examinee_id)

    payload = AttemptService.build_status(machine)
    payload['duration'] = machine.assessment.duration_minutes
    payload['quiz'] = machine.assessment.to_dict(include_answers=False)
    return jsonify(payload), 201


@student_bp.route('/attempt/<attempt_id>')
@require_student
def attempt_status(attempt_id):
    """Remaining time, position and answered flags"""
    machine = AttemptService.get_machine(attempt_id, get_examinee_id())
    return jsonify(AttemptService.build_status(machine))


@student_bp.route('/attempt/<attempt_id>/answer', methods=['POST'])
@require_student
def answer_question(attempt_id):
    """Save the current answer for one question"""
    data = _json_body()
    question_id = data.get('question_id')
    if question_id is None:
        return jsonify({
            'success': False,
            'error': 'BadRequest',
            'message': 'question_id is required',
        }), 400

    machine = AttemptService.get_machine(attempt_id, get_examinee_id())
    machine.answer(str(question_id), data.get('value', ''))

    return jsonify({
        'success': True,
        'question_id': str(question_id),
        'answered': machine.is_answered(str(question_id)),
        'progress': machine.progress,
        'remaining_seconds': machine.remaining_seconds,
    })


@student_bp.route('/attempt/<attempt_id>/navigate', methods=['POST'])
@require_student
def navigate(attempt_id):
    """Move to another question; out-of-range indexes are clamped"""
    data = _json_body()
    try:
        index = int(data.get('index', 0))
    except (TypeError, ValueError):
        return jsonify({
            'success': False,
            'error': 'BadRequest',
            'message': 'index must be an integer',
        }), 400

    machine = AttemptService.get_machine(attempt_id, get_examinee_id())
    machine.navigate(index)
    return jsonify(AttemptService.build_status(machine))


@student_bp.route('/attempt/<attempt_id>/submit', methods=['POST'])
@require_student
def submit_quiz(attempt_id):
    """Manual submission; repeated clicks return the first result"""
    return jsonify(AttemptService.submit_attempt(attempt_id, get_examinee_id(), MANUAL))


@student_bp.route('/attempt/<attempt_id>/result')
@require_student
def attempt_result(attempt_id):
    """Score and per-question review of a submitted attempt"""
    return jsonify(AttemptService.get_result(attempt_id, get_examinee_id()))


@student_bp.route('/quiz/<int:quiz_id>/attempts')
@require_student
def attempt_history(quiz_id):
    """The current student's attempts on a quiz, newest first"""
    payload = AttemptService.list_attempts(quiz_id, get_examinee_id())
    payload['success'] = True
    return jsonify(payload)


@student_bp.route('/quizzes')
@require_student
def quiz_home():
    """Published quizzes with availability and attempts left for this student"""
    return jsonify({
        'success': True,
        'quizzes': AttemptService.list_quizzes(get_examinee_id()),
    })
