"""
Identity Module
--------------
Clients for the external identity provider: bearer-token verification and
best-effort display-name lookup for review authors.
"""
