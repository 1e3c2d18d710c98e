"""Command-line interface for k8s-secret-editor."""
