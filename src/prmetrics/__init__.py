"""GitHub pull request lifecycle metrics engine."""
