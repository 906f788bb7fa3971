"""Outcome-feedback simulation over the adaptive weight loop."""

from .feedback import FeedbackSimulation, FeedbackResult, BlockSnapshot, aggregate_feedback

__all__ = [
    'FeedbackSimulation',
    'FeedbackResult',
    'BlockSnapshot',
    'aggregate_feedback',
]
