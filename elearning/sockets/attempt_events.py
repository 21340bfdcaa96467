"""
Socket.IO Event Handlers
Live countdown for quiz attempts
"""
import logging

from flask import session
from flask_socketio import emit, join_room, leave_room

from elearning.extensions import socketio, active_attempts
from elearning.services.attempt_service import attempt_room
from elearning.utils import get_examinee_id

logger = logging.getLogger(__name__)


def register_socket_events():
    """Register all Socket.IO event handlers"""

    @socketio.on('join_attempt')
    def join_attempt(data):
        """Quiz screen subscribes to its attempt's timer"""
        attempt_id = str((data or {}).get('attempt_id', ''))
        machine = active_attempts.get(attempt_id)

        if machine is None or machine.examinee_id != get_examinee_id():
            emit('attempt_error', {'attempt_id': attempt_id, 'message': 'Attempt not found'})
            return

        join_room(attempt_room(attempt_id))
        logger.debug('%s joined room %s', session.get('username'), attempt_room(attempt_id))

        # Re-sync the clock after a reconnect or page reload
        emit('timer_state', {
            'attempt_id': attempt_id,
            'state': machine.state,
            'remaining_seconds': machine.remaining_seconds,
        })

    @socketio.on('leave_attempt')
    def leave_attempt(data):
        """Leaving the screen does not stop the timer"""
        attempt_id = str((data or {}).get('attempt_id', ''))
        leave_room(attempt_room(attempt_id))
