"""Mailbox synchronization and diagnostics service."""
