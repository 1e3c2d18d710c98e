"""Secret editing domains and workflows."""
