from ledger_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
