# =============================================================================
# File: groupsync/messenger/exceptions.py
# Description: Messenger domain exceptions
# =============================================================================

from groupsync.common.exceptions.exceptions import GroupSyncException, NotFoundError


class ProjectionError(GroupSyncException):
    """A log entry could not be applied to the local store"""
    def __init__(self, message: str, event_id: str = ""):
        super().__init__(f"{message} (event {event_id})" if event_id else message)
        self.event_id = event_id


class ConversationNotFoundError(NotFoundError):
    """Conversation not found"""
    def __init__(self, public_key: str):
        super().__init__(f"Conversation not found: {public_key}")
        self.public_key = public_key
