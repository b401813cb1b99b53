"""Summary report generation."""

from .generator import RECOMMENDATION_TITLES, generate_report

__all__ = ["RECOMMENDATION_TITLES", "generate_report"]
