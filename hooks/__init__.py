"""
Event handlers that feed the upload queue.
"""
