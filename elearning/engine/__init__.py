"""
Assessment Engine
Timed quiz attempts: questions, countdown, answers, scoring and lifecycle
"""
from elearning.engine.answer_store import AnswerStore
from elearning.engine.assessment import Assessment
from elearning.engine.attempt import Attempt, AttemptStateMachine
from elearning.engine.question import ChoiceQuestion, ShortAnswerQuestion, question_from_dict
from elearning.engine.scoring import ScoreResult, QuestionResult, score, passed
from elearning.engine.timer import AttemptTimer

__all__ = [
    'AnswerStore',
    'Assessment',
    'Attempt',
    'AttemptStateMachine',
    'AttemptTimer',
    'ChoiceQuestion',
    'QuestionResult',
    'ScoreResult',
    'ShortAnswerQuestion',
    'passed',
    'question_from_dict',
    'score',
]
