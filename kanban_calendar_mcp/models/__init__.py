"""Data models for Kanban tasks."""
