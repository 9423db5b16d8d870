"""
Services layer - the trust and distribution pipeline.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Every service receives its backend handles through AppContext
- AI assistance is advisory; it can lower a trust score, never block a submission
"""
