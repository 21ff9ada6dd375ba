"""Descriptive sales analytics: revenue trends, product profitability,
RFM segmentation, cohort retention and sales-rep performance."""

__version__ = "0.1.0"
