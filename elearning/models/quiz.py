"""
Quiz Model
Authored assessment: duration, pass mark, attempt limit and availability window
"""
from elearning.extensions import db
from elearning.engine.assessment import Assessment
from elearning.utils.helpers import as_utc


class Quiz(db.Model):
    """Quiz model"""
    __tablename__ = 'quiz'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    course_id = db.Column(db.String(50), index=True)
    instructions = db.Column(db.Text)

    # Whole minutes
    duration = db.Column(db.Integer, nullable=False, default=30)

    # NULL means the system-wide default pass mark
    passing_score = db.Column(db.Float, nullable=True)

    # NULL means unlimited
    max_attempts = db.Column(db.Integer, nullable=True)

    available_from = db.Column(db.DateTime(timezone=True), nullable=True)
    available_until = db.Column(db.DateTime(timezone=True), nullable=True)
    is_published = db.Column(db.Boolean, default=False)

    # Relationships
    questions = db.relationship(
        'Question', backref='quiz', lazy=True, order_by='Question.order',
        cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<Quiz {self.title}>'

    def to_assessment(self):
        """Immutable engine snapshot of this quiz"""
        return Assessment(
            id=str(self.id),
            title=self.title,
            course_id=self.course_id,
            instructions=self.instructions,
            questions=tuple(q.to_domain() for q in self.questions),
            duration_minutes=self.duration,
            passing_score=self.passing_score,
            max_attempts=self.max_attempts,
            available_from=as_utc(self.available_from),
            available_until=as_utc(self.available_until),
        )
