"""Kaelo tutor orchestration backend.

Routes every inbound learner message to a specialised capability, enforces
the tutor persona and safety rules, and keeps short-term and long-term
conversation memory per session.
"""

__version__ = "1.0.0"
