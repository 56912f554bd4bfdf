"""
XP Reliability

Reviewer reliability scoring for peer-reviewed XP: configurable weighted
formulas over behavioural metrics, a genetic optimizer that searches for the
weights that best separate reliable from unreliable reviewers, and the
evaluation and audit tooling around them.
"""

__version__ = "0.1.0"
