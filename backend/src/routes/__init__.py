"""Application route blueprints and helpers."""

from .grades import grades_bp
from .reports import reports_bp

__all__ = ["grades_bp", "reports_bp"]
