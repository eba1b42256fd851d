"""
Priority queue driven by a comparator, kept with ``heapq``.

``comparator(a, b)`` returns True when ``a`` should leave the queue before
``b``. The default gives a min-heap. Elements the comparator cannot tell
apart leave in insertion order.
"""
import heapq
import itertools


class _Entry:
    __slots__ = ('value', 'order', 'comparator')

    def __init__(self, value, order, comparator):
        self.value = value
        self.order = order
        self.comparator = comparator

    def __lt__(self, other):
        if self.comparator(self.value, other.value):
            return True
        if self.comparator(other.value, self.value):
            return False
        return self.order < other.order


class PriorityQueue:
    def __init__(self, comparator=None):
        self.heap = []
        self.comparator = comparator or (lambda a, b: a < b)
        self._counter = itertools.count()

    def size(self):
        return len(self.heap)

    def __len__(self):
        return len(self.heap)

    def is_empty(self):
        return not self.heap

    def peek(self):
        return self.heap[0].value if self.heap else None

    def enqueue(self, value):
        heapq.heappush(self.heap, _Entry(value, next(self._counter), self.comparator))
        return len(self.heap)

    def dequeue(self):
        """Remove and return the highest priority element, or None when empty."""
        if not self.heap:
            return None
        return heapq.heappop(self.heap).value

    def __repr__(self):
        return f"PriorityQueue(size={len(self.heap)})"
