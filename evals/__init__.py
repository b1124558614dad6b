"""
Evaluation Scripts for the Membership Report
============================================
Structural quality checks for produced reports.
"""

from .eval_report import evaluate_report, load_report

__all__ = [
    'evaluate_report',
    'load_report',
]
