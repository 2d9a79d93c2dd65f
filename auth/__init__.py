"""auth/ -- Accounts, passwords and server-side sessions for UserHub.

Layer rule: auth/ imports stdlib, third-party libraries and core/ (settings).
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
