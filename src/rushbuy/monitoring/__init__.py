"""
Run status tracking and the optional status dashboard
"""

from .status_board import StatusBoard

__all__ = ['StatusBoard']
