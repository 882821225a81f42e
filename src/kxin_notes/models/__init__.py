"""Data models for the Kxin Notes store."""
