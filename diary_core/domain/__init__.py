"""Domain models and single-source-of-truth classifiers."""
