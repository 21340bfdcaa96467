"""
Answer Store
Current answer per question for the in-progress attempt
"""


class AnswerStore:
    """In-memory question id -> answer mapping for one attempt"""

    def __init__(self, on_change=None):
        self._answers = {}
        self._on_change = on_change

    def set_answer(self, question_id, value):
        question_id = str(question_id)
        value = '' if value is None else str(value)
        self._answers[question_id] = value
        if self._on_change is not None:
            self._on_change(question_id, value)

    def get_answer(self, question_id):
        return self._answers.get(str(question_id))

    def is_answered(self, question_id):
        return bool(self._answers.get(str(question_id), '').strip())

    def answered_count(self, question_ids):
        return sum(1 for qid in question_ids if self.is_answered(qid))

    def progress(self, question_ids):
        """Percentage of the given questions that have a non-empty answer"""
        question_ids = list(question_ids)
        if not question_ids:
            return 0.0
        return round(self.answered_count(question_ids) / len(question_ids) * 100, 2)

    def snapshot(self):
        return dict(self._answers)

    def __len__(self):
        return len(self._answers)
