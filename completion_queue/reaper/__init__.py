"""
Reaper module.
Contains the reaper that evicts job records past the retention window.
"""

from completion_queue.reaper.main import Reaper

__all__ = ["Reaper"]
