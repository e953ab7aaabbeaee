"""
Procurement Kernel

A transactional approval engine for purchase requests with:
- Amount-dependent approval chains
- Role-gated stage transitions
- Append-only audit ledger
- Atomic state change + ledger append
"""

__version__ = "0.1.0"
