"""Ngobrol — multi-user chat backend.

Accounts, rooms and room memberships behind a JWT-authenticated JSON API.
Room mutations are gated by an ordered role hierarchy
(owner > admin > moderator > member).
"""

__version__ = "0.1.0"
