"""
Routes Package
Exports all route blueprints
"""
from elearning.routes.student import student_bp

__all__ = ['student_bp']
