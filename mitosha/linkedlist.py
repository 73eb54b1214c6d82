"""Doubly linked list whose nodes carry user values."""

from __future__ import annotations

from functools import cmp_to_key
from itertools import pairwise
from typing import Any, Callable, Iterator, Optional

Compare = Callable[[Any, Any], int]


class ListNode:
    """A list node carrying a user value and its links."""

    __slots__ = ("value", "next", "prev")

    def __init__(self, value: Any) -> None:
        self.value = value
        self._reset()

    def _reset(self) -> None:
        self.next: Optional[ListNode] = None
        self.prev: Optional[ListNode] = None

    def first(self) -> ListNode:
        """Walk backwards to the head of the chain this node belongs to."""
        node = self
        while node.prev is not None:
            node = node.prev
        return node

    def last(self) -> ListNode:
        """Walk forwards to the tail of the chain this node belongs to."""
        node = self
        while node.next is not None:
            node = node.next
        return node

    def __repr__(self) -> str:
        return f"ListNode({self.value!r})"


class LinkedList:
    """A doubly linked list that tracks its front and back nodes."""

    def __init__(self) -> None:
        self._front: Optional[ListNode] = None
        self._back: Optional[ListNode] = None

    def front(self) -> Optional[ListNode]:
        """Return the first node, or None for an empty list."""
        return self._front

    def back(self) -> Optional[ListNode]:
        """Return the last node, or None for an empty list."""
        return self._back

    def __iter__(self) -> Iterator[ListNode]:
        node = self._front
        while node is not None:
            following = node.next
            yield node
            node = following

    def lookup(self, key: Any, compare: Compare) -> Optional[ListNode]:
        """Return the first node whose value compares equal to ``key``."""
        for node in self:
            if compare(node.value, key) == 0:
                return node
        return None

    def insert_before(self, where: ListNode, node: ListNode) -> None:
        """Link ``node`` directly in front of ``where``."""
        node._reset()
        prev = where.prev
        if prev is not None:
            prev.next = node
            node.prev = prev
        where.prev = node
        node.next = where
        if where is self._front:
            self._front = node

    def insert_after(self, where: ListNode, node: ListNode) -> None:
        """Link ``node`` directly behind ``where``."""
        node._reset()
        following = where.next
        if following is not None:
            following.prev = node
            node.next = following
        where.next = node
        node.prev = where
        if where is self._back:
            self._back = node

    def push_back(self, node: ListNode) -> None:
        """Append ``node`` at the end of the list."""
        if self._back is not None:
            self.insert_after(self._back, node)
        else:
            self.push_front(node)

    def push_front(self, node: ListNode) -> None:
        """Prepend ``node`` at the start of the list."""
        if self._front is not None:
            self.insert_before(self._front, node)
        else:
            node._reset()
            self._front = self._back = node

    def remove(self, node: ListNode) -> None:
        """Unlink ``node`` from the list and clear its links."""
        prev, following = node.prev, node.next
        if prev is not None:
            prev.next = following
        if following is not None:
            following.prev = prev
        if self._front is node:
            self._front = following
        if self._back is node:
            self._back = prev
        node._reset()

    def replace(self, old: ListNode, node: ListNode) -> None:
        """Put ``node`` in the place of ``old``, which is unlinked."""
        node._reset()
        prev, following = old.prev, old.next
        if prev is not None:
            prev.next = node
            node.prev = prev
        if following is not None:
            following.prev = node
            node.next = following
        if self._front is old:
            self._front = node
        if self._back is old:
            self._back = node
        old._reset()

    def swap(self, node1: ListNode, node2: ListNode) -> None:
        """Exchange the positions of two nodes of the list."""
        p1, n1 = node1.prev, node1.next
        p2, n2 = node2.prev, node2.next

        if n1 is node2:
            if p1 is not None:
                p1.next = node2
            node2.prev = p1
            node2.next = node1
            node1.prev = node2
            node1.next = n2
            if n2 is not None:
                n2.prev = node1
        elif p1 is node2:
            if p2 is not None:
                p2.next = node1
            node1.prev = p2
            node1.next = node2
            node2.prev = node1
            node2.next = n1
            if n1 is not None:
                n1.prev = node2
        else:
            if p1 is not None:
                p1.next = node2
            node2.prev = p1
            node2.next = n1
            if n1 is not None:
                n1.prev = node2
            if p2 is not None:
                p2.next = node1
            node1.prev = p2
            node1.next = n2
            if n2 is not None:
                n2.prev = node1

        if self._front is node1:
            self._front = node2
        elif self._front is node2:
            self._front = node1

        if self._back is node1:
            self._back = node2
        elif self._back is node2:
            self._back = node1

    def sort(self, compare: Compare) -> None:
        """Stable sort of the nodes by ``compare(a_value, b_value)``."""
        nodes = list(self)
        if not nodes:
            return
        nodes.sort(key=cmp_to_key(lambda a, b: compare(a.value, b.value)))
        nodes[0].prev = None
        nodes[-1].next = None
        for before, after in pairwise(nodes):
            before.next = after
            after.prev = before
        self._front = nodes[0]
        self._back = nodes[-1]