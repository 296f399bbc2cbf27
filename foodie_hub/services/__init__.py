"""
                        Services Module

Business logic behind the HTTP routers.

Services:
    - store: transactional order store (SQLAlchemy / in-memory)
    - orders: order placement and status lifecycle
    - reports: read-only order queries, sales report and Excel export
"""
