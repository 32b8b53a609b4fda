"""Suggestion records, persistence, and accept/reject workflow."""
