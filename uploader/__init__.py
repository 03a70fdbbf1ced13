"""
Recordings API collaborators: the upload client and the recordings cache.
"""

from uploader.client import RecordingUploader, RemoteRecord
from uploader.cache import RecordingsCache

__all__ = ['RecordingUploader', 'RemoteRecord', 'RecordingsCache']
