"""auth/ -- Authentication and authorization package for OfficeDesk.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and the
audit writer in audit/. It does NOT import from api/, records/, or cache/.
api/ imports from auth/, not the other way around.
"""
