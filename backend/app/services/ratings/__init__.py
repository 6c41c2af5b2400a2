from .service import RatingService, summarize

__all__ = ["RatingService", "summarize"]
