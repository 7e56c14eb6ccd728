"""Requirement decomposition."""

from .analyzer import AnalysisState, RequirementAnalyzer

__all__ = ["AnalysisState", "RequirementAnalyzer"]
