"""Core components: configuration, endpoint clients and the copy pipeline."""
