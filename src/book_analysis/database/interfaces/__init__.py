"""Database interfaces for the book analysis project."""

from .analysis_repository_interface import AnalysisRepository

__all__ = ["AnalysisRepository"]
