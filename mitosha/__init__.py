"""Linked list, memory pool over a byte buffer and shared memory segments."""

__version__ = "0.1.0"
__all__ = ["linkedlist", "pool", "shm"]