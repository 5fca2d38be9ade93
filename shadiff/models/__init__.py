"""Data models — registry output documents and remote source descriptions."""
