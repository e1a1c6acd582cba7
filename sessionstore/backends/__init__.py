from .base import DocumentBackend, IndexSpec
from .dynamodb import DynamoDBDocumentBackend
from .memory import InMemoryBackend

__all__ = ["DocumentBackend", "IndexSpec", "DynamoDBDocumentBackend", "InMemoryBackend"]
