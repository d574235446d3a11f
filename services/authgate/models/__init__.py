"""
Data model definitions package.
"""

from .endpoint import BackendEndpoint
from .requests import AuthOutcome, SubRequest

__all__ = [
    "AuthOutcome",
    "BackendEndpoint",
    "SubRequest",
]
