"""Clustering analysis of employee records and attrition by cluster."""

__version__ = "0.1.0"
