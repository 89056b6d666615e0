"""Chat-facing layer: command routing, replies and access control."""
