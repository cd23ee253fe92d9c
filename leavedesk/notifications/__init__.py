"""Notifications module — in-app notifications for leave and paid-leave events."""
