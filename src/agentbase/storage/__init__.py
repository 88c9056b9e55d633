"""Session persistence."""

from agentbase.storage.session_store import SessionRecord, SessionStore, create_session_record

__all__ = ["SessionRecord", "SessionStore", "create_session_record"]
