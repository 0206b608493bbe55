from .documents import DocumentStore
from .executor import BreakTestFault, FulfillmentError, FulfillmentExecutor

__all__ = ["BreakTestFault", "DocumentStore", "FulfillmentError", "FulfillmentExecutor"]
