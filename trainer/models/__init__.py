from .conversation import Conversation
from .feedback import Feedback

__all__ = ["Conversation", "Feedback"]
