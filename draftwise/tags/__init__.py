"""Paragraph tags (needs-review / done)."""
