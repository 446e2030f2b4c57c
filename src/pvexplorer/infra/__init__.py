"""File-backed collaborators."""
