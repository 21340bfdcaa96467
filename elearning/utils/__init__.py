"""
Utils Package
"""
from elearning.utils.helpers import (
    now_utc,
    as_utc,
    to_local_time,
    ensure_guest_student,
    get_examinee_id,
    require_student
)

__all__ = [
    'now_utc',
    'as_utc',
    'to_local_time',
    'ensure_guest_student',
    'get_examinee_id',
    'require_student'
]
