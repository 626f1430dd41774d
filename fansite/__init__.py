"""
Fan site backend: videos, downloads, notifications, comments and site
settings over a switchable storage backend.
"""
