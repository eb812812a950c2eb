"""
Symbol table for macro definitions.

A chained hash table: a list of buckets, each bucket a :class:`Chain` of
:class:`Pair` objects. A pair always lives in bucket
``hash(name) % capacity`` for the current capacity, so every resize moves
every pair.
"""
import logging

from .exceptions import AllocationError, NotInitializedError

logger = logging.getLogger(__name__)

START_CAPACITY = 16
FILL_THRESHOLD = 0.5
GROWTH_FACTOR = 2

_HASH_MASK = (1 << 64) - 1


def hash_name(name):
    """
    Additive/multiplicative rolling hash over the UTF-8 bytes of name.

    Bytes at even positions are added to the accumulator, bytes at odd
    positions multiply it. Wraps at 64 bits. Weak on purpose; not for
    anything security related.
    """
    value = 0
    for i, byte in enumerate(name.encode("utf-8")):
        if i % 2:
            value = (value * byte) & _HASH_MASK
        else:
            value = (value + byte) & _HASH_MASK
    return value


class Pair:
    __slots__ = ["name", "value"]

    def __init__(self, name, value):
        if "\0" in name or "\0" in value:
            raise ValueError(f"NUL character in definition of {name!r}")
        self.name = name
        self.value = value

    def __eq__(self, other):
        if not isinstance(other, Pair):
            return NotImplemented
        return (self.name, self.value) == (other.name, other.value)

    def __repr__(self):
        return f"Pair({self.name!r}, {self.value!r})"


class Chain:
    """Collision chain of one bucket. Names are unique within a chain."""

    __slots__ = ["pairs"]

    def __init__(self):
        self.pairs = []

    def _index(self, name):
        for i, pair in enumerate(self.pairs):
            if pair.name == name:
                return i
        return None

    def search(self, name):
        index = self._index(name)
        if index is None:
            return None
        return self.pairs[index]

    def insert(self, pair):
        """
        Append pair, replacing any entry with the same name.

        The old entry is removed first, so a redefinition always ends up
        at the tail. Returns True when the name was not present before.
        """
        index = self._index(pair.name)
        if index is not None:
            del self.pairs[index]
        self.pairs.append(pair)
        return index is None

    def remove(self, name):
        index = self._index(name)
        if index is None:
            return False
        del self.pairs[index]
        return True

    def clear(self):
        self.pairs = []

    def __iter__(self):
        return iter(self.pairs)

    def __len__(self):
        return len(self.pairs)


def _allocate_buckets(capacity):
    try:
        return [Chain() for _ in range(capacity)]
    except MemoryError as e:
        raise AllocationError(
            f"Could not allocate {capacity} buckets"
        ) from e


class SymbolTable:
    """
    Macro name to replacement text mapping.

    Construction initialises the table. After :meth:`clear` every
    operation except :meth:`init` raises :class:`NotInitializedError`.
    """

    def __init__(self, capacity=START_CAPACITY,
                 fill_threshold=FILL_THRESHOLD,
                 growth_factor=GROWTH_FACTOR,
                 hash_function=hash_name):
        if capacity < 1:
            raise ValueError("Capacity must be positive")
        if growth_factor < 2:
            raise ValueError("Growth factor must be at least 2")
        self.start_capacity = capacity
        self.fill_threshold = fill_threshold
        self.growth_factor = growth_factor
        self.hash_function = hash_function
        self.buckets = None
        self.count = 0
        self.resizes = 0
        self.init()

    def init(self):
        self.buckets = _allocate_buckets(self.start_capacity)
        self.count = 0
        self.resizes = 0

    @property
    def initialized(self):
        return self.buckets is not None

    @property
    def capacity(self):
        if self.buckets is None:
            return 0
        return len(self.buckets)

    def _check_initialized(self):
        if self.buckets is None:
            raise NotInitializedError("Symbol table was not initialised")

    def bucket_index(self, name):
        self._check_initialized()
        return self.hash_function(name) % len(self.buckets)

    def _chain(self, name):
        return self.buckets[self.bucket_index(name)]

    def put(self, name, value):
        self._check_initialized()
        if self._chain(name).insert(Pair(name, value)):
            self.count += 1
        self._check_resize()

    def remove(self, name):
        self._check_initialized()
        removed = self._chain(name).remove(name)
        if removed:
            self.count -= 1
        return removed

    def get(self, name):
        self._check_initialized()
        pair = self._chain(name).search(name)
        if pair is None:
            return None
        return pair.value

    def clear(self):
        self._check_initialized()
        for chain in self.buckets:
            chain.clear()
        self.buckets = None
        self.count = 0

    def _check_resize(self):
        capacity = len(self.buckets)
        if self.count / capacity <= self.fill_threshold:
            return
        new_capacity = capacity * self.growth_factor
        # Fill the new array completely before swapping it in, so a
        # failed allocation leaves the old one intact.
        new_buckets = _allocate_buckets(new_capacity)
        for chain in self.buckets:
            for pair in chain:
                index = self.hash_function(pair.name) % new_capacity
                new_buckets[index].insert(pair)
        old_buckets, self.buckets = self.buckets, new_buckets
        for chain in old_buckets:
            chain.clear()
        self.resizes += 1
        logger.debug("Resized symbol table from %d to %d buckets",
                     capacity, new_capacity)

    def __contains__(self, name):
        return self.get(name) is not None

    def __len__(self):
        self._check_initialized()
        return self.count

    def __iter__(self):
        self._check_initialized()
        for chain in self.buckets:
            yield from chain

    def items(self):
        for pair in self:
            yield pair.name, pair.value

    def __repr__(self):
        if self.buckets is None:
            return "SymbolTable(<cleared>)"
        return (
            f"SymbolTable(count={self.count}, capacity={self.capacity})"
        )
