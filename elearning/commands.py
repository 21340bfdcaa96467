"""
CLI Commands
flask import-quiz: load an authored quiz from a JSON file
"""
from datetime import datetime
import json

import click
from flask import current_app

from elearning.extensions import db
from elearning.models import Quiz, Question
from elearning.engine.question import SHORT_ANSWER, question_from_dict
from elearning.utils.helpers import as_utc


def _parse_datetime(value, name):
    if not value:
        return None
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        raise click.ClickException(f'{name} is not an ISO date/time: {value!r}')


def validate_quiz_payload(data, default_points):
    """
    Check an authoring payload

    Returns:
        list: human readable problems (empty when the quiz is valid)
    """
    problems = []
    if not (data.get('title') or '').strip():
        problems.append('title is required')

    duration = data.get('duration')
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        problems.append('duration must be a positive number of minutes')

    passing_score = data.get('passingScore')
    if passing_score is not None and (
            isinstance(passing_score, bool) or not isinstance(passing_score, (int, float))
            or not 0 <= passing_score <= 100
    ):
        problems.append('passingScore must be between 0 and 100')

    max_attempts = data.get('maxAttempts')
    if max_attempts is not None and (not isinstance(max_attempts, int) or max_attempts <= 0):
        problems.append('maxAttempts must be a positive integer')

    questions = data.get('questions') or []
    if not questions:
        problems.append('at least one question is required')

    for number, raw in enumerate(questions, 1):
        question = question_from_dict(raw, default_points=default_points)
        if not (raw.get('question') or '').strip():
            problems.append(f'question {number}: text is required')
        problems.extend(f'question {number}: {p}' for p in question.problems())

    return problems


def register_commands(app):
    """Register CLI commands on the app"""

    @app.cli.command('import-quiz')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--publish/--draft', default=False, help='Make the quiz available to students.')
    def import_quiz(path, publish):
        """Create a quiz from the JSON authoring file at PATH."""
        with open(path, encoding='utf-8') as fh:
            try:
                data = json.load(fh)
            except ValueError as exc:
                raise click.ClickException(f'Invalid JSON: {exc}')

        default_points = current_app.config['DEFAULT_QUESTION_POINTS']
        problems = validate_quiz_payload(data, default_points)
        if problems:
            raise click.ClickException('Quiz rejected:\n  ' + '\n  '.join(problems))

        quiz = Quiz(
            title=data['title'].strip(),
            course_id=data.get('courseId'),
            instructions=data.get('instructions'),
            duration=data['duration'],
            passing_score=data.get('passingScore'),
            max_attempts=data.get('maxAttempts'),
            available_from=_parse_datetime(data.get('availableFrom'), 'availableFrom'),
            available_until=_parse_datetime(data.get('availableUntil'), 'availableUntil'),
            is_published=publish,
        )

        for order, raw in enumerate(data['questions']):
            domain = question_from_dict(raw, default_points=default_points)
            row = Question(
                order=order,
                question=domain.prompt,
                question_type=domain.kind,
                points=domain.points,
            )
            if domain.kind == SHORT_ANSWER:
                row.set_options([])
                row.correct_answer = domain.expected_answer
            else:
                row.set_options(domain.options)
                row.correct_answer = domain.correct_option
            quiz.questions.append(row)

        db.session.add(quiz)
        db.session.commit()

        click.echo(f'Imported quiz {quiz.id}: {quiz.title} '
                   f'({len(quiz.questions)} questions, {quiz.duration} min'
                   f'{", published" if publish else ", draft"})')
