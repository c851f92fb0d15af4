"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build review-draft prompts from tag profiles and the latest visit.
- Call Groq under a hard timeout, or return a mock draft when no key is set.
- Record every generation attempt in the audit log.
"""
