"""Outbound email notifications."""

from .mailer import EmailNotifier

__all__ = ["EmailNotifier"]
