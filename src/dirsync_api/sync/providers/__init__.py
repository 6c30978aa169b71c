"""
Directory Providers

DirectoryFetcher implementations per identity provider.
"""

from dirsync_api.sync.providers.google_directory import GoogleDirectoryFetcher, map_google_user

__all__ = [
    "GoogleDirectoryFetcher",
    "map_google_user",
]
