"""Authentication and authorization.

Learn: Users authenticate with email/password and receive a stateless JWT.
Protected routes run the gateway dependency first, which verifies the
token, re-resolves the user and stores the user id on request.state.
Room mutations are then gated by the ordered role hierarchy in roles.py.
"""
