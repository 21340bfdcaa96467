"""
Sockets Package
"""
from elearning.sockets.attempt_events import register_socket_events

__all__ = ['register_socket_events']
