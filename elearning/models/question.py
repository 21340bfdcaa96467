"""
Question Model
Stored question rows; options are kept as a JSON string
"""
import json
import logging

from elearning.extensions import db
from elearning.engine.question import (
    DEFAULT_POINTS,
    SHORT_ANSWER,
    ChoiceQuestion,
    ShortAnswerQuestion,
)

logger = logging.getLogger(__name__)


class Question(db.Model):
    """Question model"""
    __tablename__ = 'question'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False)
    order = db.Column(db.Integer, default=0)

    question = db.Column(db.Text, nullable=False)

    # Question type: multiple-choice, true-false, short-answer
    question_type = db.Column(db.String(50), default='multiple-choice')

    # Options (for multiple-choice and true-false)
    options = db.Column(db.Text)  # Store as JSON string

    # Correct option, or the expected text for short-answer
    correct_answer = db.Column(db.Text)

    points = db.Column(db.Integer, default=DEFAULT_POINTS)

    def __repr__(self):
        return f'<Question {self.id}: {self.question[:50]}...>'

    def get_options(self):
        """Get options as list"""
        if not self.options:
            return []
        try:
            options = json.loads(self.options)
        except ValueError:
            logger.warning('Question %s has unreadable options', self.id)
            return []
        return [str(o) for o in options] if isinstance(options, list) else []

    def set_options(self, options):
        self.options = json.dumps(list(options or []))

    def to_domain(self):
        if self.question_type == SHORT_ANSWER:
            return ShortAnswerQuestion(
                id=str(self.id),
                prompt=self.question,
                expected_answer=self.correct_answer or '',
                points=self.points if self.points is not None else DEFAULT_POINTS,
            )
        return ChoiceQuestion(
            id=str(self.id),
            prompt=self.question,
            options=tuple(self.get_options()),
            correct_option=self.correct_answer or '',
            kind=self.question_type or 'multiple-choice',
            points=self.points if self.points is not None else DEFAULT_POINTS,
        )
