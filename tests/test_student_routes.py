from datetime import datetime, timedelta, timezone

import pytest

from elearning.engine.attempt import MANUAL
from elearning.engine.errors import AttemptLimitExceeded, PersistenceError
from elearning.extensions import active_attempts, socketio
from elearning.services import AttemptRepository, AttemptService

from conftest import login


def start(client, quiz_id):
    return client.post(f'/student/quiz/{quiz_id}/start')


def test_start_returns_countdown_without_answers(client, make_quiz):
    quiz_id, qids = make_quiz(instructions='No calculators.')
    login(client)

    resp = start(client, quiz_id)
    data = resp.get_json()

    assert resp.status_code == 201
    assert data['success'] is True
    assert data['state'] == 'in-progress'
    assert data['remaining_seconds'] == 60
    assert data['total_questions'] == 2
    assert data['current_index'] == 0
    assert data['progress'] == 0.0
    assert [q['id'] for q in data['quiz']['questions']] == qids
    assert all('correctAnswer' not in q for q in data['quiz']['questions'])
    assert 'correctAnswer' not in data['current_question']
    assert data['quiz']['instructions'] == 'No calculators.'
    assert data['attempt_id'] in active_attempts


def test_answer_navigate_and_submit(client, make_quiz):
    quiz_id, (q1, q2) = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']

    resp = client.post(f'/student/attempt/{attempt_id}/answer',
                       json={'question_id': q1, 'value': 'B'})
    assert resp.get_json()['answered'] is True
    assert resp.get_json()['progress'] == 50.0

    nav = client.post(f'/student/attempt/{attempt_id}/navigate', json={'index': 99}).get_json()
    assert nav['current_index'] == 1
    assert nav['questions'][0]['answered'] is True
    assert nav['questions'][1]['answered'] is False

    client.post(f'/student/attempt/{attempt_id}/answer', json={'question_id': q2, 'value': 'A'})

    result = client.post(f'/student/attempt/{attempt_id}/submit').get_json()
    assert result['score'] == 50.0
    assert result['passed'] is False
    assert result['passing_score'] == 60
    assert result['persisted'] is True
    assert [(q['question_id'], q['is_correct']) for q in result['attempt']['questions']] == [
        (q1, True), (q2, False),
    ]
    review = result['attempt']['questions'][1]
    assert review['question'] == 'Pick B again'
    assert review['answer'] == 'A'
    assert review['correct_answer'] == 'B'

    # Second click returns the stored result unchanged
    again = client.post(f'/student/attempt/{attempt_id}/submit').get_json()
    assert again['score'] == 50.0
    assert again['attempt']['id'] == attempt_id
    assert again['attempt']['trigger'] == 'manual'

    stored = client.get(f'/student/attempt/{attempt_id}/result').get_json()
    assert stored['persisted'] is True
    assert stored['attempt']['answers'] == {q1: 'B', q2: 'A'}


def test_timer_expiry_submits_attempt(client, make_quiz):
    quiz_id, (q1, _) = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/answer', json={'question_id': q1, 'value': 'B'})

    machine = active_attempts[attempt_id]
    for _ in range(60):
        machine.timer.tick()

    result = client.get(f'/student/attempt/{attempt_id}/result').get_json()
    assert result['attempt']['state'] == 'submitted'
    assert result['attempt']['trigger'] == 'expiry'
    assert result['attempt']['elapsed_seconds'] == 60
    assert result['score'] == 50.0


def test_start_again_resumes_running_attempt(client, make_quiz):
    quiz_id, _ = make_quiz()
    login(client)
    first = start(client, quiz_id).get_json()['attempt_id']
    active_attempts[first].timer.tick()

    second = start(client, quiz_id).get_json()
    assert second['attempt_id'] == first
    assert second['remaining_seconds'] == 59


def test_attempt_limit(client, make_quiz):
    quiz_id, _ = make_quiz(max_attempts=1)
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/submit')

    resp = start(client, quiz_id)
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'AttemptLimitExceeded'
    assert active_attempts == {}

    history = client.get(f'/student/quiz/{quiz_id}/attempts').get_json()
    assert len(history['attempts']) == 1


def test_quiz_not_open_yet(client, make_quiz):
    opens = datetime.now(timezone.utc) + timedelta(days=2)
    quiz_id, _ = make_quiz(available_from=opens)
    login(client)

    resp = start(client, quiz_id)
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'AssessmentNotYetAvailable'


def test_missing_or_unpublished_quiz(client, make_quiz):
    draft_id, _ = make_quiz(is_published=False)
    login(client)

    assert start(client, 999).status_code == 404
    assert start(client, draft_id).get_json()['error'] == 'NotFound'


def test_other_students_cannot_touch_attempt(client, app, make_quiz):
    quiz_id, (q1, _) = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']

    intruder = app.test_client()
    login(intruder, username='kwame.boateng')
    resp = intruder.post(f'/student/attempt/{attempt_id}/answer',
                         json={'question_id': q1, 'value': 'B'})
    assert resp.status_code == 404
    assert intruder.get(f'/student/attempt/{attempt_id}').status_code == 404


def test_admins_cannot_attempt(client, make_quiz):
    quiz_id, _ = make_quiz()
    with client.session_transaction() as sess:
        sess['user_id'] = 1
        sess['username'] = 'admin'
        sess['role'] = 'admin'

    assert start(client, quiz_id).status_code == 403


def test_guests_get_their_own_identity(client, make_quiz):
    quiz_id, _ = make_quiz()
    data = start(client, quiz_id).get_json()
    machine = active_attempts[data['attempt_id']]
    assert machine.examinee_id.startswith('Guest-')


def test_bad_requests(client, make_quiz):
    quiz_id, _ = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']

    assert client.post(f'/student/attempt/{attempt_id}/answer', json={}).status_code == 400
    assert client.post(f'/student/attempt/{attempt_id}/navigate',
                       json={'index': 'last'}).status_code == 400


def test_failed_save_keeps_result_and_warns(client, make_quiz, monkeypatch):
    def broken_save(self, attempt):
        raise PersistenceError('database is down')

    monkeypatch.setattr(AttemptRepository, 'save_attempt', broken_save)

    quiz_id, (q1, q2) = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/answer', json={'question_id': q1, 'value': 'B'})
    client.post(f'/student/attempt/{attempt_id}/answer', json={'question_id': q2, 'value': 'B'})

    result = client.post(f'/student/attempt/{attempt_id}/submit').get_json()
    assert result['score'] == 100.0
    assert result['passed'] is True
    assert result['persisted'] is False
    assert result['persistence_status'] == 'failed'
    assert 'may not have been saved' in result['warning']

    # The in-memory attempt is still there, and it is closed for answers
    resp = client.post(f'/student/attempt/{attempt_id}/answer',
                       json={'question_id': q1, 'value': 'A'})
    assert resp.status_code == 409
    assert resp.get_json()['error'] == 'InvalidState'

    review = client.get(f'/student/attempt/{attempt_id}/result').get_json()
    assert review['score'] == 100.0
    assert review['persistence_status'] == 'failed'


def test_history_newest_first_with_pass_mark(client, make_quiz):
    quiz_id, (q1, q2) = make_quiz(passing_score=50)
    login(client)

    first = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{first}/submit')

    second = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{second}/answer', json={'question_id': q1, 'value': 'B'})
    client.post(f'/student/attempt/{second}/submit')

    history = client.get(f'/student/quiz/{quiz_id}/attempts').get_json()
    assert history['passing_score'] == 50
    assert [a['id'] for a in history['attempts']] == [second, first]
    assert [a['passed'] for a in history['attempts']] == [True, False]
    assert history['attempts'][0]['submitted_at_local'].endswith('+00:00')


def test_short_answer_review_shows_expected_answer(client, make_quiz):
    quiz_id, (qid,) = make_quiz(questions=[
        {'question': 'Capital of Ghana?', 'type': 'short-answer', 'correct': 'Accra'},
    ])
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/answer', json={'question_id': qid, 'value': 'Kumasi'})

    review = client.post(f'/student/attempt/{attempt_id}/submit').get_json()['attempt']['questions']
    assert review == [{
        'question_id': qid,
        'type': 'short-answer',
        'answer': 'Kumasi',
        'is_correct': False,
        'points': 0,
        'points_possible': 10,
        'needs_review': True,
        'question': 'Capital of Ghana?',
        'correct_answer': 'Accra',
    }]


def test_pending_save_counts_towards_limit(app, make_quiz, monkeypatch):
    quiz_id, _ = make_quiz(max_attempts=1)
    app.config['ATTEMPT_BACKGROUND_TASKS'] = True
    scheduled = []
    monkeypatch.setattr(socketio, 'start_background_task', lambda *args: scheduled.append(args))

    with app.app_context():
        first = AttemptService.start_attempt(quiz_id, 'ama.mensah')
        first.submit(MANUAL)
        assert first.persistence_status == 'pending'

        with pytest.raises(AttemptLimitExceeded):
            AttemptService.start_attempt(quiz_id, 'ama.mensah')

    assert list(active_attempts) == [first.attempt_id]


def test_failed_save_counts_towards_limit(client, make_quiz, monkeypatch):
    def broken_save(self, attempt):
        raise PersistenceError('database is down')

    monkeypatch.setattr(AttemptRepository, 'save_attempt', broken_save)

    quiz_id, _ = make_quiz(max_attempts=1)
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/submit')

    resp = start(client, quiz_id)
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'AttemptLimitExceeded'


def test_failed_attempts_are_dropped_after_retention(app, client, make_quiz, monkeypatch):
    def broken_save(self, attempt):
        raise PersistenceError('database is down')

    monkeypatch.setattr(AttemptRepository, 'save_attempt', broken_save)

    quiz_id, _ = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/submit')
    assert attempt_id in active_attempts

    app.config['FAILED_ATTEMPT_RETENTION_SECONDS'] = 0
    with app.app_context():
        AttemptService.prune_registry()

    assert attempt_id not in active_attempts


def test_result_of_running_attempt_is_conflict(client, make_quiz):
    quiz_id, _ = make_quiz()
    login(client)
    attempt_id = start(client, quiz_id).get_json()['attempt_id']

    resp = client.get(f'/student/attempt/{attempt_id}/result')
    assert resp.status_code == 409
    assert resp.get_json()['error'] == 'InvalidState'


def test_quiz_without_duration_is_unprocessable(client, make_quiz):
    quiz_id, _ = make_quiz(duration=0)
    login(client)

    resp = start(client, quiz_id)
    assert resp.status_code == 422
    assert resp.get_json()['success'] is False
    assert resp.get_json()['error'] == 'InvalidDuration'
    assert active_attempts == {}


def test_database_failure_is_json(client, make_quiz, monkeypatch):
    def broken_listing(self, assessment_id, examinee_id=None):
        raise PersistenceError('database is down')

    monkeypatch.setattr(AttemptRepository, 'list_attempts_by_assessment', broken_listing)

    quiz_id, _ = make_quiz(max_attempts=2)
    login(client)

    resp = start(client, quiz_id)
    assert resp.status_code == 503
    assert resp.get_json() == {
        'success': False,
        'error': 'PersistenceError',
        'message': 'database is down',
    }
    assert client.get(f'/student/quiz/{quiz_id}/attempts').status_code == 503


def test_quiz_home_lists_status_and_attempts_left(client, make_quiz):
    now = datetime.now(timezone.utc)
    open_id, _ = make_quiz(title='Fractions', max_attempts=1)
    unlimited_id, _ = make_quiz(title='Photosynthesis')
    scheduled_id, _ = make_quiz(title='Mock Exam', available_from=now + timedelta(days=3))
    closed_id, _ = make_quiz(title='Week 1 Recap', available_until=now - timedelta(days=1))
    make_quiz(title='Draft', is_published=False)
    login(client)

    attempt_id = start(client, open_id).get_json()['attempt_id']
    client.post(f'/student/attempt/{attempt_id}/submit')
    running_id = start(client, unlimited_id).get_json()['attempt_id']

    data = client.get('/student/quizzes').get_json()
    assert data['success'] is True
    quizzes = {q['title']: q for q in data['quizzes']}
    assert set(quizzes) == {'Fractions', 'Photosynthesis', 'Mock Exam', 'Week 1 Recap'}

    done = quizzes['Fractions']
    assert done['id'] == str(open_id)
    assert done['status'] == 'completed'
    assert done['attempts_used'] == 1
    assert done['attempts_remaining'] == 0
    assert done['can_start'] is False

    running = quizzes['Photosynthesis']
    assert running['status'] == 'available'
    assert running['attempts_remaining'] is None
    assert running['active_attempt_id'] == running_id
    assert running['can_start'] is True

    assert quizzes['Mock Exam']['status'] == 'scheduled'
    assert quizzes['Mock Exam']['can_start'] is False
    assert quizzes['Mock Exam']['id'] == str(scheduled_id)
    assert quizzes['Week 1 Recap']['status'] == 'closed'
    assert quizzes['Week 1 Recap']['id'] == str(closed_id)
