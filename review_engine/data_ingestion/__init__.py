"""
Review import package.

Responsibilities:
- Read a reviews CSV export.
- Normalize ratings and ids into the canonical Review schema.
- Create reviews through the review service so the keyword index is filled.
"""
