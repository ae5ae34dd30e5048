"""Identity resolution.

Learn: Credentials are checked by an external auth service that issues
JWT access tokens. This package only verifies those tokens and resolves
the subject through the user store, producing the "current identity" that
scopes every message query and mutation.
"""
