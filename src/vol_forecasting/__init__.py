"""Implied vs realized volatility modelling: features, cross-validated model
comparison and reporting."""

__version__ = "0.1.0"
