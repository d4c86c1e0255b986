# Datastore Manager HTTP API layer
# Created: 2026-10-19
#
# Thin FastAPI routes over the Open Cloud client, mounted at /api/v1/.
