from .service import FeedbackService

__all__ = ["FeedbackService"]
