"""
Queue processing for queued uploads.

Exports QueueProcessor, which runs single-flight FIFO passes over the
upload queue with failure-kind routing.
"""

from worker.processor import QueueProcessor, PassResult

__all__ = ['QueueProcessor', 'PassResult']
