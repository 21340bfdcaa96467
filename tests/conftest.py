import sys
from datetime import datetime, timezone
from functools import partial
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from elearning import create_app  # noqa: E402
from elearning.engine.assessment import Assessment  # noqa: E402
from elearning.engine.attempt import AttemptStateMachine  # noqa: E402
from elearning.engine.errors import PersistenceError  # noqa: E402
from elearning.engine.question import ChoiceQuestion, ShortAnswerQuestion, TRUE_FALSE  # noqa: E402
from elearning.engine.timer import AttemptTimer  # noqa: E402
from elearning.extensions import db, active_attempts  # noqa: E402
from elearning.models import Quiz, Question  # noqa: E402


class FakeRepository:
    """In-memory attempt repository that records every save"""

    def __init__(self, attempts=None, fail=False):
        self.attempts = {a.id: a for a in (attempts or [])}
        self.saved = []
        self.fail = fail

    def save_attempt(self, attempt):
        self.saved.append(attempt)
        if self.fail:
            raise PersistenceError('database is down')
        self.attempts[attempt.id] = attempt
        return attempt

    def list_attempts_by_assessment(self, assessment_id, examinee_id=None):
        found = [
            a for a in self.attempts.values()
            if a.assessment_id == assessment_id
            and (examinee_id is None or a.examinee_id == examinee_id)
        ]
        return sorted(found, key=lambda a: a.submitted_at, reverse=True)

    def was_persisted(self, attempt_id):
        return attempt_id in self.attempts


class FixedClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def mcq(qid, correct='B', points=5, options=('A', 'B', 'C', 'D')):
    return ChoiceQuestion(id=qid, prompt=f'Question {qid}', options=tuple(options),
                          correct_option=correct, points=points)


def make_assessment(questions=None, **kwargs):
    fields = {
        'id': 'quiz-1',
        'title': 'Integrated Science Quiz',
        'course_id': 'SCI-101',
        'questions': tuple(questions if questions is not None else [mcq('q1'), mcq('q2')]),
        'duration_minutes': 1,
    }
    fields.update(kwargs)
    return Assessment(**fields)


def mixed_questions():
    return [
        mcq('q1', correct='4', points=10, options=('3', '4', '5', '6')),
        ChoiceQuestion(id='q2', prompt='Accra is the capital of Ghana.',
                       options=('True', 'False'), correct_option='True',
                       kind=TRUE_FALSE, points=10),
        ShortAnswerQuestion(id='q3', prompt='Capital of France?', expected_answer='Paris',
                            points=20),
    ]


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def machine(repository, clock):
    """State machine with a hand-driven timer and inline saving"""
    return AttemptStateMachine(
        repository,
        timer_factory=partial(AttemptTimer, spawn=None),
        spawn=None,
        clock=clock,
    )


@pytest.fixture
def app():
    app = create_app('testing')
    active_attempts.clear()
    yield app
    active_attempts.clear()
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_quiz(app):
    """Insert a published quiz; returns its id"""

    def _make_quiz(questions=None, **kwargs):
        fields = {
            'title': 'Integrated Science Quiz',
            'course_id': 'SCI-101',
            'duration': 1,
            'is_published': True,
        }
        fields.update(kwargs)
        questions = questions if questions is not None else [
            {'question': 'Pick B', 'type': 'multiple-choice',
             'options': ['A', 'B', 'C', 'D'], 'correct': 'B', 'points': 5},
            {'question': 'Pick B again', 'type': 'multiple-choice',
             'options': ['A', 'B', 'C', 'D'], 'correct': 'B', 'points': 5},
        ]

        with app.app_context():
            quiz = Quiz(**fields)
            for order, q in enumerate(questions):
                row = Question(order=order, question=q['question'],
                               question_type=q['type'], correct_answer=q['correct'],
                               points=q.get('points', 10))
                row.set_options(q.get('options', []))
                quiz.questions.append(row)
            db.session.add(quiz)
            db.session.commit()
            return quiz.id, [str(q.id) for q in quiz.questions]

    return _make_quiz


def login(client, username='ama.mensah'):
    with client.session_transaction() as sess:
        sess['user_id'] = 7
        sess['username'] = username
        sess['role'] = 'student'
