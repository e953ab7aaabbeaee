"""Read-only query selectors."""

from procurement_kernel.selectors.pending_selector import PendingRequestSelector

__all__ = ["PendingRequestSelector"]
