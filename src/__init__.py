"""
KSEO Booster

SEO automation core for content sites:
1. Deterministic content analysis and on-page recommendations
2. Append-only storage of analysis results and events
3. Cannibalization and decay detection with email/webhook alerts
4. Envelope encryption, API keys and rate limiting for the API layer
"""

__version__ = "0.1.0"
