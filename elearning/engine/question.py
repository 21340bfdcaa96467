"""
Question Model
Typed questions (multiple-choice, true/false, short-answer) and their correctness rule
"""
from dataclasses import dataclass, field
import re

MULTIPLE_CHOICE = 'multiple-choice'
TRUE_FALSE = 'true-false'
SHORT_ANSWER = 'short-answer'

CHOICE_KINDS = (MULTIPLE_CHOICE, TRUE_FALSE)
QUESTION_KINDS = CHOICE_KINDS + (SHORT_ANSWER,)

DEFAULT_POINTS = 10
MIN_OPTIONS = 2
MAX_OPTIONS = 4

_WHITESPACE = re.compile(r'\s+')


def normalize_answer(value):
    """Trim and collapse whitespace runs; case is preserved"""
    if value is None:
        return ''
    return _WHITESPACE.sub(' ', str(value)).strip()


@dataclass(frozen=True)
class ChoiceQuestion:
    """Multiple-choice or true/false question with one designated correct option"""
    id: str
    prompt: str
    options: tuple
    correct_option: str
    kind: str = MULTIPLE_CHOICE
    points: int = DEFAULT_POINTS

    def problems(self):
        issues = []
        if self.kind not in CHOICE_KINDS:
            issues.append(f'unsupported kind {self.kind!r}')
        if not MIN_OPTIONS <= len(self.options) <= MAX_OPTIONS:
            issues.append(f'expected {MIN_OPTIONS}-{MAX_OPTIONS} options, got {len(self.options)}')
        if normalize_answer(self.correct_option) not in [normalize_answer(o) for o in self.options]:
            issues.append('correct option is not one of the options')
        if not isinstance(self.points, int) or self.points <= 0:
            issues.append('points must be a positive integer')
        return issues

    @property
    def answer_key(self):
        return self.correct_option

    @property
    def is_well_formed(self):
        return not self.problems()

    def is_correct(self, answer):
        # Malformed questions cannot be answered correctly
        if not self.options or normalize_answer(self.correct_option) not in [
            normalize_answer(o) for o in self.options
        ]:
            return False
        given = normalize_answer(answer)
        return bool(given) and given == normalize_answer(self.correct_option)

    def to_dict(self, include_answer=True):
        data = {
            'id': self.id,
            'question': self.prompt,
            'type': self.kind,
            'options': list(self.options),
            'points': self.points,
        }
        if include_answer:
            data['correctAnswer'] = self.correct_option
        return data


@dataclass(frozen=True)
class ShortAnswerQuestion:
    """Free-text question graded by exact match against an expected answer"""
    id: str
    prompt: str
    expected_answer: str
    points: int = DEFAULT_POINTS
    kind: str = field(default=SHORT_ANSWER, init=False)

    def problems(self):
        issues = []
        if not normalize_answer(self.expected_answer):
            issues.append('expected answer is empty')
        if not isinstance(self.points, int) or self.points <= 0:
            issues.append('points must be a positive integer')
        return issues

    @property
    def answer_key(self):
        return self.expected_answer

    @property
    def is_well_formed(self):
        return not self.problems()

    def is_correct(self, answer):
        expected = normalize_answer(self.expected_answer)
        return bool(expected) and normalize_answer(answer) == expected

    def to_dict(self, include_answer=True):
        data = {
            'id': self.id,
            'question': self.prompt,
            'type': self.kind,
            'options': [],
            'points': self.points,
        }
        if include_answer:
            data['shortAnswer'] = self.expected_answer
        return data


def question_from_dict(data, default_points=DEFAULT_POINTS):
    """
    Build a question from the authoring payload

    Accepted keys: id, question, type, options, correctAnswer, shortAnswer, points.
    True/false questions without options get ['True', 'False'].
    """
    kind = data.get('type') or MULTIPLE_CHOICE
    question_id = str(data.get('id', ''))
    prompt = data.get('question') or ''
    points = data.get('points', default_points)

    if kind == SHORT_ANSWER:
        return ShortAnswerQuestion(
            id=question_id,
            prompt=prompt,
            expected_answer=data.get('shortAnswer') or data.get('correctAnswer') or '',
            points=points,
        )

    options = data.get('options')
    if not options and kind == TRUE_FALSE:
        options = ['True', 'False']
    return ChoiceQuestion(
        id=question_id,
        prompt=prompt,
        options=tuple(options or ()),
        correct_option=data.get('correctAnswer') or '',
        kind=kind,
        points=points,
    )
