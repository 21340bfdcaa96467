"""
Engine Errors
Typed failures raised by the assessment engine and its collaborators
"""


class QuizEngineError(Exception):
    """Base class for every error raised by the assessment engine"""

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


# ================= USAGE ERRORS =================

class UsageError(QuizEngineError):
    """Operation is illegal for the current lifecycle state"""


class InvalidState(UsageError):
    """Operation is not allowed in the attempt's current state"""


class InvalidDuration(UsageError, ValueError):
    """Duration must be a positive whole number of minutes"""


# ================= POLICY VIOLATIONS =================

class PolicyViolation(QuizEngineError):
    """Business rule rejected the attempt before it was created"""


class AttemptLimitExceeded(PolicyViolation):
    """Maximum number of attempts reached for this quiz"""


class AssessmentNotYetAvailable(PolicyViolation):
    """This quiz is not open yet"""


class AssessmentClosed(PolicyViolation):
    """This quiz is closed"""


# ================= COLLABORATORS =================

class NotFound(QuizEngineError):
    """Quiz not found"""


class PersistenceError(QuizEngineError):
    """Attempt could not be saved"""
