from marketplace.store.repository import Store

__all__ = ["Store"]
