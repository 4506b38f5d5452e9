"""HTTP routers and request-scoped dependencies."""
