"""Version and version-range algebra."""
