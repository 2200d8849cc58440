"""audit/ -- Append-only audit trail for OfficeDesk.

Layer rule: audit/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, auth/, records/, or cache/. Services and routes
write through audit.store.AuditStore.record().
"""
