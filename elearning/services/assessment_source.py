"""
Assessment Source
Loads authored quizzes as immutable engine assessments
"""
from elearning.extensions import db
from elearning.models import Quiz
from elearning.engine.errors import NotFound


class AssessmentSource:
    """Read access to authored quizzes"""

    @staticmethod
    def get_assessment_by_id(quiz_id, published_only=True):
        """
        Get a quiz snapshot by id

        Raises:
            NotFound: quiz is missing, or unpublished when published_only is set
        """
        try:
            quiz = db.session.get(Quiz, int(quiz_id))
        except (TypeError, ValueError):
            quiz = None

        if quiz is None or (published_only and not quiz.is_published):
            raise NotFound(f'Quiz {quiz_id} not found')
        return quiz.to_assessment()

    @staticmethod
    def list_published():
        """Published quizzes in creation order"""
        quizzes = Quiz.query.filter_by(is_published=True).order_by(Quiz.id).all()
        return [quiz.to_assessment() for quiz in quizzes]
