"""Inbox Watch: mailbox monitoring with LLM authorship classification."""
