"""Build label training corpora from GitHub issues and pull requests."""
