"""Bot API transport and the long-poll update stream."""
