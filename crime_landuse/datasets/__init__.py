"""Dataset ingesters and preprocessors."""
