"""auth/ -- Access-control core for the forum API.

Credential verification, the bearer token codec, the authentication gate,
the ownership policy, and the origin gate all live here.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or forum/.
api/ and forum/ import from auth/, not the other way around.
"""
