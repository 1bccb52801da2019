"""
Subreddit sentiment refresh service.

Fetches recent posts and top-level comments from the configured subreddits,
scores them and maintains per-subreddit daily sentiment aggregates.
"""

__version__ = "0.1.0"
