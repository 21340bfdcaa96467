"""
Models Package
Exports all database models
"""
from elearning.models.quiz import Quiz
from elearning.models.question import Question
from elearning.models.attempt import QuizAttempt, AttemptAnswer

__all__ = ['Quiz', 'Question', 'QuizAttempt', 'AttemptAnswer']
