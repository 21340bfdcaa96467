"""
Assessment Model
Immutable snapshot of an authored quiz as the engine sees it
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from elearning.engine.scoring import passed


@dataclass(frozen=True)
class Assessment:
    id: str
    title: str
    questions: Tuple
    duration_minutes: int
    course_id: Optional[str] = None
    passing_score: Optional[float] = None
    max_attempts: Optional[int] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    instructions: Optional[str] = None

    @property
    def question_ids(self):
        return [q.id for q in self.questions]

    @property
    def total_points(self):
        return sum(q.points for q in self.questions)

    def question_at(self, index):
        return self.questions[index]

    def has_opened(self, now):
        return self.available_from is None or now >= self.available_from

    def has_closed(self, now):
        return self.available_until is not None and now > self.available_until

    def is_passing(self, percentage):
        return passed(percentage, self.passing_score)

    def to_dict(self, include_answers=False):
        return {
            'id': self.id,
            'title': self.title,
            'course_id': self.course_id,
            'instructions': self.instructions,
            'duration': self.duration_minutes,
            'passing_score': self.passing_score,
            'max_attempts': self.max_attempts,
            'total_questions': len(self.questions),
            'questions': [q.to_dict(include_answer=include_answers) for q in self.questions],
        }
