"""Interactive editor for single keys of Kubernetes Secrets."""
