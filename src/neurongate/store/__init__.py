"""Document store boundary."""

from .base import ROOT_PATH, Store, StorePath, StoreRequest, StoreTarget, StoreVerb
from .http import HttpStore, render_request

__all__ = [
    "ROOT_PATH",
    "HttpStore",
    "Store",
    "StorePath",
    "StoreRequest",
    "StoreTarget",
    "StoreVerb",
    "render_request",
]
