"""
Notifier module.
Delivers terminal job events to caller-supplied webhook URLs.
"""

from completion_queue.notifier.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
