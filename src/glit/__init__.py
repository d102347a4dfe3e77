"""GLIT reward and progression engine."""
