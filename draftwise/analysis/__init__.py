"""Change-aware analysis pipeline: hashing, caching, diffing, filtering."""
