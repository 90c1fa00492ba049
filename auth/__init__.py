"""auth/ -- Authentication package for AdminDesk.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and the
audit/ leaf package. It does NOT import from api/ or web/.
api/ and web/ import from auth/, not the other way around.
"""
