"""Mailbox monitoring: the poll scheduler and new-mail notifier."""

from .notifier import SoundNotifier
from .scheduler import PollScheduler

__all__ = ["PollScheduler", "SoundNotifier"]
