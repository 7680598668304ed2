# Importing the package registers every table with Base.metadata
# (used by Alembic autogenerate and by create_tables()).
from snapstream.models.user import Follow, User
from snapstream.models.post import Comment, Like, Post
from snapstream.models.chat import Conversation, ConversationParticipant, Message

__all__ = [
    "User",
    "Follow",
    "Post",
    "Like",
    "Comment",
    "Conversation",
    "ConversationParticipant",
    "Message",
]
