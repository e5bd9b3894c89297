"""
Lead Quality Engine
===================
Two independent, deterministic components for CRM lead management:
  Scoring: weighted factors → score, conversion probability, deal value, insights
  Duplicates: fuzzy matching → duplicate groups → merge / ignore decisions
"""

__version__ = "1.0.0"
__author__ = "Lead Quality Team"
