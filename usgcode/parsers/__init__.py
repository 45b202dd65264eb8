"""Drawing readers."""
