"""Text reports for assessments, predictions, programs and simulations."""

from .reports import (
    generate_risk_report,
    generate_prediction_report,
    generate_program_report,
    generate_feedback_report,
    export_feedback_csv,
)

__all__ = [
    'generate_risk_report',
    'generate_prediction_report',
    'generate_program_report',
    'generate_feedback_report',
    'export_feedback_csv',
]
