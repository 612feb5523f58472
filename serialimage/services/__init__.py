"""Business-level operations built on the models and repositories."""
