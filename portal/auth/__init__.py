"""
Discord authentication for the loan portal.

Design goals:
- Guild-gated: only members of one configured Discord guild get a session.
- Stateless server: the session lives in a signed HttpOnly cookie.
- Provider calls return explicit results; one policy function classifies them.
"""
