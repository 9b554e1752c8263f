"""
API tests package for the EasyBuy backend.

Covers both dispatch endpoints and the health probes:
- Read dispatcher (inventory, orders, ledger, dashboard, profiles, wishlists)
- Write dispatcher (accounts, orders, installments, inventory, wishlists)
- Purchase flows across both
"""
