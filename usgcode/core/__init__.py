"""Core conversion pipeline: configuration, dimensions, compaction and output."""
