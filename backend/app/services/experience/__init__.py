"""End-to-end experience generation."""

from .pipeline import SYSTEM_USER_ID, ExperiencePipeline

__all__ = ["SYSTEM_USER_ID", "ExperiencePipeline"]
