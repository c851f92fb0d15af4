"""
Review recommendation engine.

Responsibilities:
- Extract dictionary keywords from review text and keep the keyword index.
- Infer one effective preference from explicit input or tag profiles.
- Recall candidates through keyword index, text match, then popularity.
- Rerank candidates deterministically and explain each pick.
"""
