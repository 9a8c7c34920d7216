"""Process lifecycle: the background coordinator, the foreground shell, and the CLI entry."""
