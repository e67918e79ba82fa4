"""
Core domain models and contracts.

This module contains the foundational building blocks that are independent
of the platform services (install referrer, advertising id, storage).
"""
