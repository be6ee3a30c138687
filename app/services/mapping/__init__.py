"""Usage: field-to-fragment mapping store with undo/redo."""

from app.services.mapping.store import TransactionStore
from app.services.mapping.transactions import Transaction

__all__ = ["Transaction", "TransactionStore"]
