"""
Attempt Models
Submitted quiz attempts and their per-question answers
"""
import json

from elearning.extensions import db
from elearning.engine.attempt import Attempt
from elearning.engine.scoring import QuestionResult
from elearning.utils.helpers import as_utc


class QuizAttempt(db.Model):
    """One examinee's pass at a quiz"""
    __tablename__ = 'quiz_attempt'

    id = db.Column(db.String(32), primary_key=True)
    quiz_id = db.Column(db.Integer, nullable=False, index=True)
    student = db.Column(db.String(100), nullable=False, index=True)
    state = db.Column(db.String(20), nullable=False)
    trigger = db.Column(db.String(20))
    score = db.Column(db.Float)
    elapsed_seconds = db.Column(db.Integer, default=0)
    answers = db.Column(db.Text)  # JSON map question id -> answer
    started_at = db.Column(db.DateTime(timezone=True))
    submitted_at = db.Column(db.DateTime(timezone=True), index=True)

    question_answers = db.relationship(
        'AttemptAnswer', backref='attempt', lazy=True,
        order_by='AttemptAnswer.position', cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<QuizAttempt {self.id} {self.student}: {self.score}>'

    def update_from_domain(self, attempt):
        self.quiz_id = int(attempt.assessment_id)
        self.student = attempt.examinee_id
        self.state = attempt.state
        self.trigger = attempt.trigger
        self.score = attempt.score
        self.elapsed_seconds = attempt.elapsed_seconds
        self.answers = json.dumps(attempt.answers, sort_keys=True)
        self.started_at = attempt.started_at
        self.submitted_at = attempt.submitted_at

        # Replace per-question rows
        self.question_answers = [
            AttemptAnswer(
                position=position,
                question_id=result.question_id,
                question_type=result.kind,
                answer=result.answer,
                is_correct=result.correct,
                points=result.points_earned,
                points_possible=result.points_possible,
                needs_review=result.needs_review,
            )
            for position, result in enumerate(attempt.results)
        ]

    def to_domain(self):
        return Attempt(
            id=self.id,
            assessment_id=str(self.quiz_id),
            examinee_id=self.student,
            state=self.state,
            answers=json.loads(self.answers) if self.answers else {},
            elapsed_seconds=self.elapsed_seconds or 0,
            score=self.score,
            started_at=as_utc(self.started_at),
            submitted_at=as_utc(self.submitted_at),
            trigger=self.trigger,
            results=tuple(a.to_domain() for a in self.question_answers),
        )


class AttemptAnswer(db.Model):
    """Graded answer to one question within an attempt"""
    __tablename__ = 'attempt_answer'

    id = db.Column(db.Integer, primary_key=True)
    attempt_id = db.Column(
        db.String(32), db.ForeignKey('quiz_attempt.id'), nullable=False, index=True
    )
    position = db.Column(db.Integer, default=0)
    question_id = db.Column(db.String(50), nullable=False)
    question_type = db.Column(db.String(50))
    answer = db.Column(db.Text, default='')
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    points = db.Column(db.Integer, default=0)
    points_possible = db.Column(db.Integer, default=0)
    needs_review = db.Column(db.Boolean, default=False)

    __table_args__ = (
        db.UniqueConstraint(
            'attempt_id', 'question_id',
            name='unique_answer_per_attempt_question'
        ),
    )

    def __repr__(self):
        return f'<AttemptAnswer Q{self.question_id} in {self.attempt_id}>'

    def to_domain(self):
        return QuestionResult(
            question_id=self.question_id,
            kind=self.question_type,
            answer=self.answer or '',
            correct=bool(self.is_correct),
            points_earned=self.points or 0,
            points_possible=self.points_possible or 0,
            needs_review=bool(self.needs_review),
        )
