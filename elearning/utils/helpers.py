"""
Helper Functions
Utility functions used across the application
"""
from datetime import datetime, timezone
from functools import wraps
import uuid

from flask import current_app, jsonify, session
import pytz


def now_utc():
    """Get current UTC timestamp"""
    return datetime.now(timezone.utc)


def as_utc(dt):
    """Attach UTC to naive timestamps read back from the database"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.utc)
    return dt.astimezone(pytz.utc)


def to_local_time(utc_dt, tz_name=None):
    """Convert UTC datetime to the configured display timezone"""
    if not utc_dt:
        return None
    tz = pytz.timezone(tz_name or current_app.config['TIMEZONE'])
    return as_utc(utc_dt).astimezone(tz)


def ensure_guest_student():
    """Ensure visitors without a login get a guest student session"""
    if "user_id" not in session:
        session["role"] = "student"
        session["user_id"] = -1

    if "username" not in session:
        session["username"] = "Guest"

    # Unique guest ID
    if "guest_id" not in session:
        session["guest_id"] = str(uuid.uuid4())[:8]


def get_examinee_id():
    """Current examinee identifier from the session (opaque to the engine)"""
    if session.get('user_id') == -1 or session.get('user_id') is None:
        return f"Guest-{session.get('guest_id', '00000000')[:8]}"
    return session.get('username', 'Unknown Student')


# Decorators
def require_student(f):
    """
    Decorator to require a student (or guest student) session
    Admins are rejected; quizzes are attempted by students only
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if session.get("role") == "admin":
            return jsonify({
                'success': False,
                'error': 'Forbidden',
                'message': 'Admins cannot attempt quizzes',
            }), 403
        ensure_guest_student()
        return f(*args, **kwargs)
    return decorated_function
