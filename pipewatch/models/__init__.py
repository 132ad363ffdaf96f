"""Data models for pipewatch."""
