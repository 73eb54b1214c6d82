"""First-fit memory pool that keeps all of its state inside a byte buffer.

Blocks are addressed by their offset inside the buffer, so a pool formatted
in shared memory can be attached to from any process that maps it.
"""

from __future__ import annotations

import struct
from typing import Optional, Union

Buffer = Union[bytearray, memoryview]

_U64 = struct.Struct("=Q")
_I64 = struct.Struct("=q")
_WORD = _U64.size
_TAG = 2 * _WORD
_SELF_POINTER = -(1 << 63)

_MARKER = 0x4D504F4F4CFAFAFA

# Header fields, each one machine word.
_F_MARKER = 0
_F_SIZE = 8
_F_BALANCE = 16
_F_NTAGS = 24
_F_BITS = 32
_F_TAGS = 40
_F_FREE = 48
_HEADER = 56


class PoolError(MemoryError):
    """Raised when the pool is exhausted, corrupted or misused."""


def _align_size(need: int) -> int:
    return (1 + (need + _WORD - 1) // _TAG) * _TAG


def _bits_size(ntags: int) -> int:
    return (ntags + 7) // 8


def _fit_tags(available: int) -> int:
    ntags = available // _TAG
    while _bits_size(ntags) + ntags * _TAG > available:
        ntags -= 1
    return ntags


def calc_required_size(itemsize: int, nitem: int) -> int:
    """Bytes needed for a pool holding ``nitem`` blocks of ``itemsize`` bytes."""
    if itemsize < 0 or nitem < 0:
        raise ValueError("item size and count must not be negative")
    tags_bytes = _align_size(itemsize) * nitem
    return _HEADER + _bits_size(tags_bytes // _TAG) + tags_bytes


def size_stuff(total_memory_size: int) -> int:
    """Bytes of a ``total_memory_size`` buffer that are not usable payload."""
    if total_memory_size < _HEADER:
        raise ValueError(f"need {_HEADER} or more bytes")
    ntags = _fit_tags(total_memory_size - _HEADER)
    return total_memory_size - (ntags * _TAG - _WORD)


def _writable_view(buffer: Buffer) -> memoryview:
    view = memoryview(buffer)
    if view.readonly:
        raise TypeError("pool buffer must be writable")
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


class MemoryPool:
    """Allocator over a caller-supplied writable buffer."""

    def __init__(self, view: memoryview) -> None:
        self._buf = view

    # -- raw access --------------------------------------------------------

    def _load(self, offset: int) -> int:
        return _U64.unpack_from(self._buf, offset)[0]

    def _store(self, offset: int, value: int) -> None:
        _U64.pack_into(self._buf, offset, value)

    def _ptr(self, field: int) -> Optional[int]:
        rel = _I64.unpack_from(self._buf, field)[0]
        if rel == _SELF_POINTER:
            return field
        if rel == 0:
            return None
        return field + rel

    def _set_ptr(self, field: int, target: Optional[int]) -> None:
        if target is None:
            rel = 0
        elif target == field:
            rel = _SELF_POINTER
        else:
            rel = target - field
        _I64.pack_into(self._buf, field, rel)

    def _tag_size(self, tag: int) -> int:
        return self._load(tag)

    def _set_tag_size(self, tag: int, size: int) -> None:
        self._store(tag, size)

    def _tag_next(self, tag: int) -> Optional[int]:
        return self._ptr(tag + _WORD)

    def _set_tag_next(self, tag: int, nxt: Optional[int]) -> None:
        self._set_ptr(tag + _WORD, nxt)

    @property
    def _balance(self) -> int:
        return self._load(_F_BALANCE)

    @_balance.setter
    def _balance(self, value: int) -> None:
        self._store(_F_BALANCE, value)

    @property
    def _ntags(self) -> int:
        return self._load(_F_NTAGS)

    # -- bitmap of free tags -----------------------------------------------

    def _bit_position(self, tag: int) -> tuple[int, int]:
        index = (tag - self._ptr(_F_TAGS)) // _TAG
        byte, bit = divmod(index, 8)
        return self._ptr(_F_BITS) + byte, bit

    def _bits_set(self, tag: int) -> None:
        where, bit = self._bit_position(tag)
        self._buf[where] |= 1 << bit

    def _bits_clear(self, tag: int) -> None:
        where, bit = self._bit_position(tag)
        self._buf[where] &= ~(1 << bit) & 0xFF

    def _tag_left(self, tag: int) -> Optional[int]:
        """Nearest free tag that lies before ``tag``."""
        tags = self._ptr(_F_TAGS)
        bits = self._ptr(_F_BITS)
        byte, bit = divmod((tag - tags) // _TAG, 8)
        low = self._buf[bits + byte] & ((1 << bit) - 1)
        if low:
            return tags + (byte * 8 + low.bit_length() - 1) * _TAG
        before = bytes(self._buf[bits:bits + byte]).rstrip(b"\x00")
        if not before:
            return None
        index = (len(before) - 1) * 8 + before[-1].bit_length() - 1
        return tags + index * _TAG

    def _tag_merge(self, tag: int) -> None:
        while (nxt := self._tag_next(tag)) is not None:
            if nxt > tag + self._tag_size(tag):
                break
            self._set_tag_size(tag, self._tag_size(tag) + self._tag_size(nxt))
            self._set_tag_next(tag, self._tag_next(nxt))
            self._bits_clear(nxt)
        self._bits_set(tag)

    def _free_tags(self):
        tag = self._ptr(_F_FREE)
        while tag is not None:
            yield tag
            tag = self._tag_next(tag)

    def _block_tag(self, offset: int) -> int:
        tags = self._ptr(_F_TAGS)
        tag = offset - _WORD
        if tags is None or tag < tags or tag >= tags + self._ntags * _TAG or (tag - tags) % _TAG:
            raise PoolError(f"offset {offset} is not a block of this pool")
        return tag

    def _insert_free(self, tag: int) -> None:
        head = self._ptr(_F_FREE)
        if head is None or head > tag:
            self._set_tag_next(tag, head)
            self._tag_merge(tag)
            self._set_ptr(_F_FREE, tag)
            return
        left = self._tag_left(tag)
        if left is None:
            raise PoolError("free block bitmap is inconsistent")
        self._set_tag_next(tag, self._tag_next(left))
        self._set_tag_next(left, tag)
        self._tag_merge(tag)
        self._tag_merge(left)

    # -- construction ------------------------------------------------------

    @classmethod
    def format(cls, buffer: Buffer) -> MemoryPool:
        """Lay out an empty pool over the whole of ``buffer``."""
        view = _writable_view(buffer)
        size = len(view)
        if size < _HEADER:
            raise PoolError(f"need {_HEADER} or more bytes, got {size}")
        view[:_HEADER] = bytes(_HEADER)
        pool = cls(view)
        pool._store(_F_MARKER, _MARKER)
        pool._store(_F_SIZE, size)
        pool._store(_F_NTAGS, _fit_tags(size - _HEADER))
        pool.reset()
        return pool

    @classmethod
    def attach(cls, buffer: Buffer) -> MemoryPool:
        """Use a pool that was formatted earlier in ``buffer``."""
        view = _writable_view(buffer)
        if len(view) < _HEADER:
            raise PoolError("buffer too small to hold a pool")
        marker = _U64.unpack_from(view, _F_MARKER)[0]
        if marker & _MARKER != _MARKER:
            raise PoolError("invalid pool marker")
        return cls(view)

    def reset(self) -> None:
        """Return the pool to its empty state, dropping every block."""
        ntags = self._ntags
        nbits = _bits_size(ntags)
        self._set_ptr(_F_BITS, _HEADER)
        self._buf[_HEADER:_HEADER + nbits] = bytes(nbits)
        tags = _HEADER + nbits
        self._set_ptr(_F_TAGS, tags)
        if ntags:
            self._set_ptr(_F_FREE, tags)
            self._set_tag_size(tags, ntags * _TAG)
            self._set_tag_next(tags, None)
        else:
            self._set_ptr(_F_FREE, None)
        self._balance = 0

    # -- statistics --------------------------------------------------------

    def total_size(self) -> int:
        """Size of the whole buffer the pool was formatted in."""
        return self._load(_F_SIZE)

    def total_capacity(self) -> int:
        """Largest payload one block could have in an empty pool."""
        ntags = self._ntags
        return ntags * _TAG - _WORD if ntags else 0

    def used(self) -> int:
        """Bytes taken by allocated blocks, their tags included."""
        return self._balance

    def free_space(self) -> int:
        """Sum of the payload sizes of all free blocks."""
        return sum(self._tag_size(tag) - _WORD for tag in self._free_tags())

    def utilization(self) -> float:
        """Fraction of the block area in use, from 0.0 to 1.0."""
        ntags = self._ntags
        if not ntags:
            return 1.0
        return self._balance / (ntags * _TAG)

    # -- allocation --------------------------------------------------------

    def alloc(self, size: int) -> int:
        """Allocate ``size`` bytes and return the block's offset."""
        if size < 0:
            raise ValueError("size must not be negative")
        aligned = _align_size(size)
        prev: Optional[int] = None
        for tag in self._free_tags():
            if self._tag_size(tag) >= aligned:
                break
            prev = tag
        else:
            raise PoolError(f"no free block of {size} bytes")

        tag_size = self._tag_size(tag)
        if tag_size > aligned:
            rest = tag + aligned
            self._set_tag_size(rest, tag_size - aligned)
            self._set_tag_size(tag, aligned)
            self._set_tag_next(rest, self._tag_next(tag))
            self._set_tag_next(tag, rest)
            self._tag_merge(rest)

        if prev is not None:
            self._set_tag_next(prev, self._tag_next(tag))
        else:
            self._set_ptr(_F_FREE, self._tag_next(tag))

        self._bits_clear(tag)
        self._balance += aligned
        return tag + _WORD

    def realloc(self, offset: Optional[int], size: int) -> int:
        """Resize a block; shrinking keeps its offset, growing may move it."""
        if offset is None:
            return self.alloc(size)
        if size < 0:
            raise ValueError("size must not be negative")
        aligned = _align_size(size)
        tag = self._block_tag(offset)
        tag_size = self._tag_size(tag)

        if aligned == tag_size:
            return offset

        if aligned < tag_size:
            shrink = tag_size - aligned
            if self._balance < shrink:
                raise PoolError("pool balance error")
            self._balance -= shrink
            self._set_tag_size(tag, aligned)
            rest = tag + aligned
            self._set_tag_size(rest, shrink)
            head = self._ptr(_F_FREE)
            if head is None or head > rest:
                self._set_ptr(_F_FREE, rest)
                self._set_tag_next(rest, head)
                self._tag_merge(rest)
                return offset
            left = self._tag_left(tag)
            if left is None:
                raise PoolError("free block bitmap is inconsistent")
            self._set_tag_next(rest, self._tag_next(left))
            self._set_tag_next(left, rest)
            self._tag_merge(rest)
            self._tag_merge(left)
            return offset

        moved = self.alloc(size)
        payload = tag_size - _WORD
        self._buf[moved:moved + payload] = bytes(self._buf[offset:offset + payload])
        self.free(offset)
        return moved

    def zalloc(self, size: int) -> int:
        """Allocate ``size`` bytes set to zero."""
        offset = self.alloc(size)
        self._buf[offset:offset + size] = bytes(size)
        return offset

    def free(self, offset: Optional[int]) -> None:
        """Give a block back to the pool, merging it with free neighbours."""
        if offset is None:
            return
        tag = self._block_tag(offset)
        tag_size = self._tag_size(tag)
        if self._balance < tag_size:
            raise PoolError("pool balance error")
        self._balance -= tag_size
        self._insert_free(tag)

    def memdup(self, data: bytes) -> Optional[int]:
        """Copy ``data`` into a new block; None for empty data."""
        if not data:
            return None
        offset = self.alloc(len(data))
        self._buf[offset:offset + len(data)] = data
        return offset

    def view(self, offset: int, size: Optional[int] = None) -> memoryview:
        """Writable view of a block's payload, all of it by default."""
        tag = self._block_tag(offset)
        payload = self._tag_size(tag) - _WORD
        if size is None:
            size = payload
        elif not 0 <= size <= payload:
            raise ValueError(f"block holds {payload} bytes, not {size}")
        return self._buf[offset:offset + size]

    def dump(self) -> str:
        """Human-readable report of the pool's state and free list."""
        lines = [
            "=== MPOOL DUMP ===",
            f"Total size     : {self.total_size()} bytes",
            f"Total tags     : {self._ntags} tags",
            f"Payload capacity: {self.total_capacity()} bytes",
            f"Used space     : {self.used()} bytes",
            f"Free space     : {self.free_space()} bytes",
            f"Utilization    : {self.utilization() * 100.0:.2f}%",
            "",
            "Free list:",
        ]
        lines.extend(
            f"  [tag: {tag}] size: {self._tag_size(tag)} bytes" for tag in self._free_tags()
        )
        lines.append("==================")
        return "\n".join(lines) + "\n"