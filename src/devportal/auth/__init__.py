"""Authentication and authorization.

Learn: Callers authenticate with an opaque session token in the
Authorization header. Sessions are created by local signup/login or by
an OAuth callback (Discord, GitHub), and resolved back to a user by
SessionResolver. Route-level access rules are expressed as guard
chains (see guards.py) that fill a typed RequestContext before the
handler runs.
"""
