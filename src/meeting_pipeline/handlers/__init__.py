"""Handler layer exports."""

from .meeting_handler import MeetingHandler

__all__ = ["MeetingHandler"]
