"""AI provider access and response validation."""
