"""
Core modules for the RAG Cost Estimator.

This package contains word/token conversion, model pricing, the cost
calculation and its backcheck.
"""
