"""
Shared helpers used across VoiceSync packages.
"""
