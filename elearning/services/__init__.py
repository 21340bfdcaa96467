"""
Services Package
"""
from elearning.services.assessment_source import AssessmentSource
from elearning.services.attempt_repository import AttemptRepository
from elearning.services.attempt_service import AttemptService

__all__ = ['AssessmentSource', 'AttemptRepository', 'AttemptService']
