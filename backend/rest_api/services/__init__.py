"""
Services module for business logic.

- domain/: one service per aggregate (session, menu, cart, split, order, bill)

Usage:
    from rest_api.services.domain import BillService
    service = BillService(db)
    totals = service.my_share(session_id, "Ana")
"""
