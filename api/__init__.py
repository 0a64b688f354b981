"""
Proof Anchor - HTTP Surfaces

- ProofMiddleware / ProofInterceptor: record the exchanges an ASGI app serves
- Query API (FastAPI):
  - GET /records/{record_id} - Verify an anchored record
  - GET /stats, /pricing, /balance - Registry and account views
  - GET /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
