"""HTTP API layer of the Backplane service.

Key components:
- **main**: Application factory and lifespan (backend startup and release)
- **server**: uvicorn driven by the shutdown coordinator
- **middleware**: Correlation IDs, request tracing and outcome logging,
  error rendering
- **schemas**: Pydantic request, response and error bodies
- **v1**: Versioned routes
"""
