"""
Scoring Engine
Deterministic percentage score and per-question review from questions and answers

Functions:
- score: grade every question and aggregate points into a ScoreResult
- passed: compare a percentage against the quiz pass mark (default 60%)
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from elearning.engine.question import MULTIPLE_CHOICE, TRUE_FALSE, SHORT_ANSWER

DEFAULT_PASSING_SCORE = 60


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    kind: str
    answer: str
    correct: bool
    points_earned: int
    points_possible: int
    needs_review: bool = False

    def to_dict(self):
        return {
            'question_id': self.question_id,
            'type': self.kind,
            'answer': self.answer,
            'is_correct': self.correct,
            'points': self.points_earned,
            'points_possible': self.points_possible,
            'needs_review': self.needs_review,
        }


@dataclass(frozen=True)
class ScoreResult:
    percentage: float
    earned_points: int
    total_points: int
    per_question: Tuple[QuestionResult, ...] = ()

    def to_dict(self):
        return {
            'percentage': self.percentage,
            'earned_points': self.earned_points,
            'total_points': self.total_points,
            'questions': [r.to_dict() for r in self.per_question],
        }


def _grade_choice(question, answer):
    return question.is_correct(answer), False


def _grade_short_answer(question, answer):
    # Exact match only; the flag is informational and the answer is left for review
    return question.is_correct(answer), True


_GRADERS = {
    MULTIPLE_CHOICE: _grade_choice,
    TRUE_FALSE: _grade_choice,
    SHORT_ANSWER: _grade_short_answer,
}


def _points(question):
    points = getattr(question, 'points', 0)
    if isinstance(points, bool) or not isinstance(points, (int, float)) or points < 0:
        return 0
    return points


def grade_question(question, answer):
    """Grade one question; unknown kinds are always incorrect"""
    grader = _GRADERS.get(question.kind)
    answer = '' if answer is None else answer
    if grader is None:
        correct, needs_review = False, False
    else:
        correct, needs_review = grader(question, answer)

    possible = _points(question)
    return QuestionResult(
        question_id=question.id,
        kind=question.kind,
        answer=answer,
        correct=correct,
        points_earned=possible if correct else 0,
        points_possible=possible,
        needs_review=needs_review,
    )


def score(questions: Iterable, answers: Dict[str, str]) -> ScoreResult:
    """Score an answer set; percentage is 0 when the quiz carries no points"""
    answers = answers or {}
    per_question = tuple(grade_question(q, answers.get(q.id, '')) for q in questions)

    earned = sum(r.points_earned for r in per_question)
    total = sum(r.points_possible for r in per_question)
    percentage = round(100 * earned / total, 2) if total > 0 else 0.0

    return ScoreResult(
        percentage=percentage,
        earned_points=earned,
        total_points=total,
        per_question=per_question,
    )


def passed(percentage, passing_score: Optional[float] = None):
    threshold = DEFAULT_PASSING_SCORE if passing_score is None else passing_score
    return percentage >= threshold
